import enum
from typing import Callable, Dict, List, Optional

from core.logging import setup_logger

logger = setup_logger("tripplanner_client")

Listener = Callable[[Optional[dict]], None]


class SessionPhase(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"


class SessionEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class SessionProvider:
    """Process-wide holder of the signed-in session.

    ``init`` loads whatever session already exists and moves the provider
    from ``loading`` to ``ready``. Afterwards the session only changes
    through ``apply``, which the API client calls when it signs in or out.
    Consumers read ``session`` and ``user`` and may ``subscribe`` to be
    told about changes.
    """

    def __init__(self, load_session: Optional[Callable[[], Optional[dict]]] = None):
        self._load_session = load_session
        self._session: Optional[dict] = None
        self._listeners: List[Listener] = []
        self.phase = SessionPhase.LOADING

    @property
    def session(self) -> Optional[dict]:
        return self._session

    @property
    def user(self) -> Optional[dict]:
        return self._session.get("user") if self._session else None

    @property
    def access_token(self) -> Optional[str]:
        return self._session.get("access_token") if self._session else None

    @property
    def is_loading(self) -> bool:
        return self.phase == SessionPhase.LOADING

    def init(self) -> None:
        try:
            if self._load_session is not None:
                self._session = self._load_session()
        except Exception as e:
            logger.error(f"Error initializing session: {e}")
            self._session = None
        finally:
            self.phase = SessionPhase.READY
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, event: SessionEvent, session: Optional[dict]) -> None:
        logger.info(f"Auth state changed: {event.value}")
        self._session = None if event == SessionEvent.SIGNED_OUT else session
        self.phase = SessionPhase.READY
        self._notify()

    def teardown(self) -> None:
        self._listeners.clear()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._session)


def session_from_token_response(body: Dict) -> dict:
    return {"access_token": body["access_token"], "user": body.get("user")}
