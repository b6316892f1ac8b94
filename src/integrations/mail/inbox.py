"""
IMAP inbox access.

Connects with imapclient, fetches unseen messages and marks them seen.
imapclient is blocking, so every call runs in a worker thread.
"""

import asyncio
import logging
from typing import List, Optional

from imapclient import IMAPClient, SEEN
from imapclient.exceptions import IMAPClientError

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.integrations.errors import TransportError
from src.integrations.mail.config import MailboxConfig
from src.integrations.mail.message import InboundMessage, parse_message, unparseable_message

logger = logging.getLogger(__name__)


class InboxClient:
    """IMAP collaborator used by the inbox monitor."""

    def __init__(self, mailbox: Optional[str] = None, timeout: float = 30):
        self.mailbox = mailbox or AUTOMATION_CONFIG["monitor"]["mailbox"]
        self.timeout = timeout

    async def connect(self, config: MailboxConfig) -> IMAPClient:
        """
        Open an authenticated session with the inbox selected.

        Raises:
            TransportError: On network, protocol or authentication failure
        """
        try:
            return await asyncio.to_thread(self._connect, config)
        except (IMAPClientError, OSError) as e:
            raise TransportError(f"IMAP connect to {config.imap_host} failed: {e}") from e

    def _connect(self, config: MailboxConfig) -> IMAPClient:
        session = IMAPClient(config.imap_host, port=config.imap_port, ssl=config.ssl, timeout=self.timeout)
        try:
            if config.uses_oauth:
                session.oauth2_login(config.email, config.access_token)
            else:
                session.login(config.email, config.password)
            session.select_folder(self.mailbox)
        except Exception:
            session.shutdown()
            raise
        logger.info(f"Connected to {config.imap_host} for user {config.owner}")
        return session

    async def fetch_unseen(self, session: IMAPClient) -> List[InboundMessage]:
        """
        Fetch every unseen message in the selected mailbox, oldest first, and mark them seen.

        Messages that cannot be parsed come back as placeholders with
        `parse_error` set and a `<mailbox>:<uid>` id.

        Raises:
            TransportError: On protocol failure
        """
        try:
            fetched = await asyncio.to_thread(self._fetch_unseen, session)
        except (IMAPClientError, OSError) as e:
            raise TransportError(f"IMAP fetch failed: {e}") from e

        messages = []
        for uid, raw in fetched:
            fallback_id = f"{self.mailbox}:{uid}"
            try:
                messages.append(parse_message(raw, fallback_id=fallback_id))
            except Exception as e:
                logger.warning(f"Unparseable message uid={uid}, passing it on for review: {e}")
                messages.append(unparseable_message(fallback_id, e))
        return messages

    def _fetch_unseen(self, session: IMAPClient):
        uids = session.search(["UNSEEN"])
        if not uids:
            return []
        uids = sorted(uids)
        # Fetching BODY[] (not BODY.PEEK[]) sets \Seen on the server
        data = session.fetch(uids, ["BODY[]"])
        session.add_flags(uids, [SEEN])
        logger.info(f"Fetched {len(uids)} unseen messages")
        return [(uid, data[uid][b"BODY[]"]) for uid in uids if uid in data]

    async def close(self, session: IMAPClient) -> None:
        try:
            await asyncio.to_thread(session.logout)
        except (IMAPClientError, OSError) as e:
            logger.warning(f"IMAP logout failed: {e}")
