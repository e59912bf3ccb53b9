"""外部協作者的最小介面"""

from .confirmation import ConfirmationPrompt
from .transport import StreamTransportProtocol

__all__ = [
    "ConfirmationPrompt",
    "StreamTransportProtocol",
]
