"""
例外階層

- 可恢復的串流問題（格式錯誤的紀錄、找不到來源句子、越界 offset）只記錄日誌，不拋出
- 下列例外代表呼叫端的使用錯誤或無法繼續的狀況
"""

from typing import Optional


class ProofmarkError(Exception):
    """proofmark 所有例外的基底類別"""


class DocumentError(ProofmarkError):
    """文件模型操作失敗"""


class PositionError(DocumentError):
    """位置超出文件範圍"""

    def __init__(self, pos: int, size: int):
        super().__init__(f"Position {pos} out of range (0..{size})")
        self.pos = pos
        self.size = size


class ReplaceError(DocumentError):
    """替換操作不符合文件結構（跨越父節點或內容類型不符）"""


class DispatchError(DocumentError):
    """在 dispatch 進行中再次 dispatch"""


class UnknownCorrectionError(ProofmarkError, KeyError):
    """Store 中找不到指定 id 的修正項目"""

    def __init__(self, correction_id: str):
        super().__init__(correction_id)
        self.correction_id = correction_id

    def __str__(self) -> str:
        return f"Unknown correction id: {self.correction_id!r}"


class InvalidTransitionError(ProofmarkError):
    """修正項目狀態不允許此操作（例如接受一個已忽略的項目）"""


class ConflictResolutionError(ProofmarkError):
    """無法處理編輯衝突（衝突不存在，或造成衝突的編輯已不是最新一步）"""


class StreamTransportError(ProofmarkError):
    """串流請求失敗（網路錯誤或非 2xx 回應）"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
