# src/taskcycle/connectors/matrix_client.py

from __future__ import annotations

"""
Matrix client factory for reminder delivery.

Reminders are plain m.notice messages, so the client is send-only: no sync
loop, no end-to-end encryption store. The access token is cached in
<matrix_store_path>/session.json; the password is needed only once, to
create that session.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from nio import AsyncClient, AsyncClientConfig, JoinError, LoginResponse

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class MatrixSession:
    access_token: str
    user_id: str
    device_id: str

    @classmethod
    def read(cls, path: Path) -> MatrixSession | None:
        """Cached session, or None when missing or incomplete."""
        try:
            raw = json.loads(path.read_text("utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %r", path, e)
            return None
        if not isinstance(raw, dict):
            return None
        fields = [str(raw.get(k) or "") for k in ("access_token", "user_id", "device_id")]
        if not all(fields):
            logger.warning("Ignoring incomplete %s", path)
            return None
        return cls(*fields)

    def write(self, path: Path) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(self)), "utf-8")
        os.replace(tmp, path)
        try:
            os.chmod(path, 0o600)
        except OSError:
            pass

    def apply(self, client: AsyncClient) -> None:
        client.access_token = self.access_token
        client.user_id = self.user_id
        client.device_id = self.device_id


async def _login(client: AsyncClient, password: str, device_name: str) -> MatrixSession | None:
    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        return None
    return MatrixSession(resp.access_token, resp.user_id, resp.device_id)


async def _ensure_joined(client: AsyncClient, room_id: str) -> None:
    # Joining a room we are already in is a no-op on the server.
    resp = await client.join(room_id)
    if isinstance(resp, JoinError):
        logger.warning("Could not join reminder room %s: %s", room_id, resp.message)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Logged-in AsyncClient for the configured reminder account, or None when
    Matrix is not configured or login fails (the caller falls back to the
    console).
    """
    homeserver = (settings.matrix_homeserver or "").strip()
    user_id = (settings.matrix_user_id or "").strip()
    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set TASKCYCLE_MATRIX_HOMESERVER and TASKCYCLE_MATRIX_USER_ID")
        return None

    store_dir = Path(settings.matrix_store_path)
    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = store_dir / "session.json"

    client = AsyncClient(homeserver, user_id, config=AsyncClientConfig(store_sync_tokens=False))

    session = MatrixSession.read(session_file)
    if session is not None:
        logger.info("Matrix session restored for %s", session.user_id)
    else:
        password = (settings.matrix_password or "").strip()
        if not password:
            logger.error("No Matrix session yet; set TASKCYCLE_MATRIX_PASSWORD once to create one")
            await client.close()
            return None

        session = await _login(client, password, f"{settings.app_name} reminders")
        if session is None:
            await client.close()
            return None
        try:
            session.write(session_file)
            logger.info("Matrix session saved to %s", session_file)
        except OSError as e:
            logger.error("Failed to write %s: %r", session_file, e)

    session.apply(client)

    room_id = (settings.matrix_room_id or "").strip()
    if room_id:
        await _ensure_joined(client, room_id)
    return client
