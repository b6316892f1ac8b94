from .message import InboundMessage, parse_message
from .config import MailboxConfig, build_mailbox_config, load_mailbox_config
from .inbox import InboxClient
from .transport import MailTransport

__all__ = [
    'InboundMessage',
    'parse_message',
    'MailboxConfig',
    'build_mailbox_config',
    'load_mailbox_config',
    'InboxClient',
    'MailTransport',
]
