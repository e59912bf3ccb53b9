"""測試用的假串流傳輸與資料建構函數"""

import json
from typing import Iterable, Iterator, List, Optional

from proofmark.annotation.types import CorrectionItem, Suggestion, SuggestionClass
from proofmark.core.errors import StreamTransportError


class FakeTransport:
    """依序產生預先準備好的 chunk；可在第 fail_after 個 chunk 之後模擬斷線"""

    def __init__(self, chunks: Iterable[str], fail_after: Optional[int] = None):
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.requests: List[str] = []

    def stream(self, text: str) -> Iterator[str]:
        self.requests.append(text)
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise StreamTransportError("connection reset")
            yield chunk


def progress_record(line_index: int, total_lines: int, source: str, *errors: dict) -> str:
    return json.dumps(
        {
            "event": "progress",
            "line_index": line_index,
            "total_lines": total_lines,
            "result": {"source": source, "errors": list(errors)},
        }
    )


def issue(position: int, end_position: int, original: str, corrected: str, error_type: str = "typo") -> dict:
    return {
        "position": position,
        "end_position": end_position,
        "original": original,
        "corrected": corrected,
        "error_type": error_type,
        "explanation": "",
    }


def make_item(
    item_id: str,
    from_: int,
    to: int,
    replacement: str = "fix",
    suggestion_class: SuggestionClass = SuggestionClass.TYPO,
    original_text: str = "",
) -> CorrectionItem:
    return CorrectionItem(
        id=item_id,
        from_=from_,
        to=to,
        original_text=original_text,
        suggestions=(Suggestion(replacement, suggestion_class),),
    )
