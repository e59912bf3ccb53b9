"""
編輯工作階段 (EditorSession)

持有目前的文件、選取位置與有序的 plugin 列表。
所有文件變更（使用者輸入、引擎內部編輯、undo/redo）都經由 dispatch()：

1. 依註冊順序呼叫每個 plugin 的 apply(tr)
2. 提交新文件與選取位置
3. 通知監聽者（canonical text 變更觸發點）與捲動監聽者

單執行緒、不可重入：apply 期間再次 dispatch 會拋出 DispatchError。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from proofmark.core.errors import DispatchError
from proofmark.utils.logger import get_logger

from .model import Node
from .transaction import EditKind, Transaction

TransactionListener = Callable[[Transaction], None]
ScrollListener = Callable[[int], None]


class Plugin(ABC):
    """
    Session plugin 抽象基類

    子類實作：
    - CorrectionStore: 修正標註狀態
    - History: undo/redo 紀錄
    """

    key: str = "plugin"

    @abstractmethod
    def init(self, session: "EditorSession") -> None:
        pass

    @abstractmethod
    def apply(self, tr: Transaction) -> None:
        """在新文件提交前以 transaction 更新 plugin 自身狀態"""
        pass


class EditorSession:
    def __init__(
        self,
        doc: Node,
        plugins: Sequence[Plugin] = (),
        selection: Optional[int] = None,
    ):
        self.doc = doc
        self.selection = selection
        self._plugins: List[Plugin] = []
        self._plugins_by_key: Dict[str, Plugin] = {}
        self._listeners: List[TransactionListener] = []
        self._scroll_listeners: List[ScrollListener] = []
        self._dispatching = False
        self._logger = get_logger("document.session")

        for plugin in plugins:
            self.add_plugin(plugin)

    # =========================================================================
    # Plugins 與監聽者
    # =========================================================================

    def add_plugin(self, plugin: Plugin) -> None:
        if plugin.key in self._plugins_by_key:
            raise ValueError(f"Plugin {plugin.key!r} already registered")
        self._plugins.append(plugin)
        self._plugins_by_key[plugin.key] = plugin
        plugin.init(self)

    def get_plugin(self, key: str) -> Optional[Plugin]:
        return self._plugins_by_key.get(key)

    def subscribe(self, listener: TransactionListener) -> Callable[[], None]:
        """註冊 dispatch 完成後的監聽者，回傳取消註冊函數"""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def on_scroll(self, listener: ScrollListener) -> Callable[[], None]:
        self._scroll_listeners.append(listener)
        return lambda: self._scroll_listeners.remove(listener)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def transaction(self) -> Transaction:
        return Transaction(self.doc, self.selection)

    def dispatch(self, tr: Transaction) -> None:
        if self._dispatching:
            raise DispatchError("dispatch() called while another transaction is being applied")
        if tr.before is not self.doc:
            raise DispatchError("Transaction was built against a stale document")

        self._dispatching = True
        try:
            for plugin in self._plugins:
                plugin.apply(tr)
            self.doc = tr.doc
            self.selection = tr.selection
        finally:
            self._dispatching = False

        self._logger.debug(f"Dispatched {tr!r}")

        for listener in list(self._listeners):
            listener(tr)
        if tr.scrolled_into_view and self.selection is not None:
            for scroll_listener in list(self._scroll_listeners):
                scroll_listener(self.selection)

    # =========================================================================
    # 使用者編輯捷徑
    # =========================================================================

    def insert_text(self, pos: int, text: str) -> Transaction:
        tr = self.transaction().insert_text(pos, text).set_edit_kind(EditKind.USER)
        self.dispatch(tr)
        return tr

    def delete(self, from_: int, to: int) -> Transaction:
        tr = self.transaction().delete(from_, to).set_edit_kind(EditKind.USER)
        self.dispatch(tr)
        return tr

    def replace_text(self, from_: int, to: int, text: str) -> Transaction:
        tr = self.transaction().replace_with_text(from_, to, text).set_edit_kind(EditKind.USER)
        self.dispatch(tr)
        return tr

    def undo(self) -> bool:
        history = self.get_plugin("history")
        return history.undo() if history is not None else False

    def redo(self) -> bool:
        history = self.get_plugin("history")
        return history.redo() if history is not None else False
