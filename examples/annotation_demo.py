"""
修正標註範例 - 展示串流分析、接受/忽略與編輯衝突

預設使用內建的假服務回應；設定 PROOFMARK_SERVICE_URL 後改用真正的修正服務。
"""

import json
import os

from proofmark import AnnotationConfig, CorrectionEngine, CorrectionServiceClient, ServiceConfig
from proofmark.document.builders import code_block, doc, p


class CannedTransport:
    """依句子回傳預先準備好的修正結果"""

    RESULTS = [
        ("I has a cat.", [(2, 5, "has", "have", "typo")]),
        ("It run fast.", [(3, 6, "run", "runs", "typo")]),
        ("The weather are sunny tomorrow yesterday.", [(12, 15, "are", "is", "semantic")]),
    ]

    def stream(self, text):
        for index, (source, errors) in enumerate(self.RESULTS):
            record = {
                "event": "progress",
                "line_index": index,
                "total_lines": len(self.RESULTS),
                "result": {
                    "source": source,
                    "errors": [
                        {
                            "position": start,
                            "end_position": end,
                            "original": original,
                            "corrected": corrected,
                            "error_type": error_type,
                            "explanation": "",
                        }
                        for start, end, original, corrected, error_type in errors
                    ],
                },
            }
            yield "data: " + json.dumps(record) + "\n"


def build_transport():
    if os.environ.get("PROOFMARK_SERVICE_URL"):
        return CorrectionServiceClient(ServiceConfig.from_env())
    return CannedTransport()


def show(engine):
    for item in engine.items:
        text = engine.doc.text_between(item.from_, item.to)
        state = item.result.value if item.result else "pending"
        print(f"  [{state:8}] {item.from_:3}..{item.to:<3} '{text}' → '{item.primary.replacement_text}'")


def demo_analysis():
    print("=" * 60)
    print("串流分析 + 接受 / 忽略")
    print("=" * 60)

    engine = CorrectionEngine(
        doc(
            p("I has a cat."),
            code_block("print('not analysed')"),
            p("It run fast."),
            p("The weather are sunny tomorrow yesterday."),
        )
    )
    print(f"送出文字: {engine.canonical_text()!r}")

    engine.analyze(
        build_transport(),
        on_progress=lambda current, total: print(f"  進度 {current}/{total}"),
        on_error=lambda error: print(f"  ❌ {error}"),
    )
    show(engine)

    first, second = engine.items[0], engine.items[1]
    engine.accept(first.id)
    engine.ignore(second.id)
    print("接受第一個、忽略第二個之後:")
    show(engine)

    engine.undo()
    print("編輯器 undo 之後:")
    show(engine)
    print()


def demo_conflict():
    print("=" * 60)
    print("編輯覆蓋標註時的確認流程")
    print("=" * 60)

    def prompt(conflict):
        print(f"  ⚠️ 編輯 ({conflict.edit_kind.value}) 影響了 {len(conflict.ids)} 個標註，選擇取消")

    engine = CorrectionEngine(doc(p("I has a cat.")), AnnotationConfig(), prompt=prompt)
    engine.analyze(build_transport())
    item = engine.items[0]

    engine.session.delete(item.from_ + 1, item.from_ + 2)
    print(f"  刪除後: {engine.doc.content[0].text_content!r}，標註數 {len(engine.items)}")

    conflict = engine.pending_conflicts[0]
    engine.cancel_removal(conflict.conflict_id)
    print(f"  取消後: {engine.doc.content[0].text_content!r}，標註數 {len(engine.items)}")
    print()


if __name__ == "__main__":
    demo_analysis()
    demo_conflict()

    print("=" * 60)
    print("✅ 所有範例執行完成!")
    print("=" * 60)
