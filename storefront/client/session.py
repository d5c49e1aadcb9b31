import json
import logging
import random
import string
import time
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

SESSION_KEY = "cartSessionId"
DEFAULT_PATH = Path.home() / ".storefront" / "session.json"


def new_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionStore:
    """Small JSON key/value file that outlives the process, like browser local storage."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path else DEFAULT_PATH

    def _read(self) -> dict:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def session_id(self) -> str:
        sid: Optional[str] = self.get(SESSION_KEY)
        if not sid:
            sid = new_session_id()
            self.set(SESSION_KEY, sid)
        return sid
