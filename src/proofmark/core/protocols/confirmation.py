"""
Confirmation Prompt Protocol

UI 層收到編輯衝突時的回呼介面。回呼不需要同步回答：
之後再呼叫 LifecycleController.confirm_removal() / cancel_removal() 即可。
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from proofmark.annotation.lifecycle import RemovalConflict


@runtime_checkable
class ConfirmationPrompt(Protocol):
    def __call__(self, conflict: "RemovalConflict") -> None:
        ...
