import filetype

from ..domain.interfaces import IContentSniffer
from ..domain.models import SniffedType

# filetype needs at most this many leading bytes
SNIFF_HEADER_BYTES = 8192


class FiletypeSniffer(IContentSniffer):
    def sniff(self, data: bytes) -> SniffedType:
        kind = filetype.guess(data[:SNIFF_HEADER_BYTES])
        if kind is None:
            return SniffedType(mime_type=None, extension=None)
        return SniffedType(mime_type=kind.mime, extension=kind.extension)
