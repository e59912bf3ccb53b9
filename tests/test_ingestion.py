"""
串流擷取測試

以 FakeTransport 取代網路，驗證批次切分、進度、句子定位與分析流程。
"""

import pytest

from proofmark.annotation.types import SuggestionClass
from proofmark.document.builders import code_block, doc, p
from proofmark.engine import CorrectionEngine
from proofmark.service.ingestion import CorrectionStreamAdapter, MalformedRecordError, parse_record

from helpers import FakeTransport, issue, progress_record


CAT_TEXT = "I has a cat.\nIt run fast.\n"


@pytest.fixture
def three_line_doc():
    return doc(p("I has a cat."), p("It run fast."), p("We is happy and they is sad."))


@pytest.fixture
def three_line_chunks():
    """第一個 chunk 含兩行共 3 個問題，第二個 chunk 含 2 個問題"""
    first = "\n".join(
        [
            progress_record(0, 3, "I has a cat.", issue(2, 5, "has", "have"), issue(8, 11, "cat", "dog", "semantic")),
            progress_record(1, 3, "It run fast.", issue(3, 6, "run", "runs")),
        ]
    )
    second = progress_record(2, 3, "We is happy and they is sad.", issue(3, 5, "is", "are"), issue(21, 23, "is", "are"))
    return [first + "\n", second + "\n"]


class TestParseRecord:
    """測試單行紀錄解析"""

    def test_plain_json(self):
        assert parse_record('{"event": "progress"}') == {"event": "progress"}

    def test_data_prefix(self):
        assert parse_record('data: {"event": "done"}') == {"event": "done"}

    def test_blank_line(self):
        assert parse_record("   ") is None

    @pytest.mark.parametrize("line", ["not json", "[1, 2]", "data: {broken"])
    def test_malformed(self, line):
        with pytest.raises(MalformedRecordError):
            parse_record(line)


class TestAdapter:
    """測試 chunk → 批次"""

    def test_batches_follow_chunks(self, three_line_chunks):
        text = "I has a cat.\nIt run fast.\nWe is happy and they is sad.\n"
        progress = []
        adapter = CorrectionStreamAdapter()

        batches = list(adapter.iter_batches(text, three_line_chunks, on_progress=lambda c, t: progress.append((c, t))))

        assert [len(batch) for batch in batches] == [3, 2]
        assert progress == [(1, 3), (2, 3), (3, 3)]
        has, cat, run = batches[0]
        assert has.source_offsets == (2, 5)
        assert has.misspelled_word == "has"
        assert has.primary.replacement_text == "have"
        assert cat.suggestion_class is SuggestionClass.SEMANTIC
        # 第二句前有一個換行
        assert run.source_offsets == (15, 18)
        assert batches[1][0].source_offsets == (27, 29)

    def test_record_split_across_chunks(self):
        record = progress_record(0, 1, "I has a cat.", issue(2, 5, "has", "have")) + "\n"
        middle = len(record) // 2
        batches = list(CorrectionStreamAdapter().iter_batches(CAT_TEXT, [record[:middle], record[middle:]]))
        assert [len(batch) for batch in batches] == [1]

    def test_trailing_record_without_newline(self):
        record = progress_record(0, 1, "I has a cat.", issue(2, 5, "has", "have"))
        batches = list(CorrectionStreamAdapter().iter_batches(CAT_TEXT, [record]))
        assert [len(batch) for batch in batches] == [1]

    def test_duplicate_sentences_matched_in_order(self):
        text = "Hi.\nHi.\n"
        chunks = [
            progress_record(0, 2, "Hi.", issue(0, 2, "Hi", "Hey")) + "\n",
            progress_record(1, 2, "Hi.", issue(0, 2, "Hi", "Hey")) + "\n",
        ]
        batches = list(CorrectionStreamAdapter().iter_batches(text, chunks))
        assert [batch[0].source_offsets for batch in batches] == [(0, 2), (3, 5)]

    def test_missing_source_warns_and_continues(self):
        events = []
        chunks = [
            progress_record(0, 2, "Not in text.", issue(0, 3, "Not", "No")) + "\n",
            progress_record(1, 2, "It run fast.", issue(3, 6, "run", "runs")) + "\n",
        ]
        batches = list(CorrectionStreamAdapter(on_event=events.append).iter_batches(CAT_TEXT, chunks))

        assert [item.misspelled_word for batch in batches for item in batch] == ["run"]
        warnings = [e for e in events if e["type"] == "warning"]
        assert [w["reason"] for w in warnings] == ["source_not_found"]

    def test_malformed_and_other_records_skipped(self):
        events = []
        chunk = "\n".join(
            [
                "this is not json",
                '{"event": "start", "total_lines": 1}',
                "data: " + progress_record(0, 1, "I has a cat.", issue(2, 5, "has", "have")),
                "",
            ]
        )
        batches = list(CorrectionStreamAdapter(on_event=events.append).iter_batches(CAT_TEXT, [chunk]))

        assert [len(batch) for batch in batches] == [1]
        reasons = [e["reason"] for e in events if e["type"] == "warning"]
        assert reasons == ["malformed_record"]

    def test_offsets_clamped_to_sentence(self):
        events = []
        chunk = progress_record(0, 1, "I has a cat.", issue(8, 40, "cat.", "dog.")) + "\n"
        (batch,) = CorrectionStreamAdapter(on_event=events.append).iter_batches(CAT_TEXT, [chunk])
        assert batch[0].source_offsets == (8, 12)
        assert events[-1]["reason"] == "offset_clamped"

    def test_ids_are_unique(self, three_line_chunks):
        text = "I has a cat.\nIt run fast.\nWe is happy and they is sad.\n"
        items = [item for batch in CorrectionStreamAdapter().iter_batches(text, three_line_chunks) for item in batch]
        assert len({item.id for item in items}) == 5


class TestAnalysisRun:
    """測試完整分析流程"""

    def test_end_to_end_example(self, engine):
        transport = FakeTransport([progress_record(0, 2, "I has a cat.", issue(2, 5, "has", "have")) + "\n"])

        run = engine.analyze(transport)

        assert transport.requests == [CAT_TEXT]
        assert run.item_count == 1
        (item,) = engine.items
        assert item.misspelled_word == "has"
        assert item.primary.replacement_text == "have"
        assert item.suggestion_class is SuggestionClass.TYPO
        assert (item.from_, item.to) == (3, 6)
        assert item.original_text == "has"
        assert item.source_offsets is None

    def test_streaming_aggregation(self, three_line_doc, three_line_chunks):
        engine = CorrectionEngine(three_line_doc)
        received, progress, completed = [], [], []

        engine.analyze(
            FakeTransport(three_line_chunks),
            on_data=received.append,
            on_progress=lambda current, total: progress.append((current, total)),
            on_complete=lambda: completed.append(True),
        )

        assert [len(batch) for batch in received] == [3, 2]
        assert len(engine.items) == 5
        assert len({item.id for item in engine.items}) == 5
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert completed == [True]
        texts = [engine.doc.text_between(item.from_, item.to) for item in engine.items]
        assert texts == ["has", "cat", "run", "is", "is"]

    def test_new_run_clears_previous_items(self, engine):
        record = progress_record(0, 1, "I has a cat.", issue(2, 5, "has", "have")) + "\n"
        engine.analyze(FakeTransport([record]))
        engine.analyze(FakeTransport([record]))
        assert len(engine.items) == 1

    def test_batches_convert_against_current_document(self, three_line_doc, three_line_chunks):
        """批次之間的編輯不影響之後批次的定位"""
        engine = CorrectionEngine(three_line_doc)
        run = engine.create_run(FakeTransport(three_line_chunks))
        steps = run.steps()

        next(steps)
        engine.session.dispatch(engine.session.transaction().insert(0, [p()]))
        list(steps)

        texts = sorted(engine.doc.text_between(item.from_, item.to) for item in engine.items)
        assert len(engine.items) == 5
        assert texts == ["cat", "has", "is", "is", "run"]

    def test_stale_batches_discarded(self, three_line_doc, three_line_chunks):
        events = []
        completed = []
        engine = CorrectionEngine(three_line_doc, on_event=events.append)
        run = engine.create_run(FakeTransport(three_line_chunks), on_complete=lambda: completed.append(True))
        steps = run.steps()

        next(steps)
        engine.store.clear()
        list(steps)

        assert run.superseded is True
        assert engine.items == []
        assert completed == []
        assert "stale_batch" in [e["type"] for e in events]

    def test_transport_error_keeps_committed_items(self, three_line_doc, three_line_chunks):
        errors, completed = [], []
        engine = CorrectionEngine(three_line_doc)

        run = engine.analyze(
            FakeTransport(three_line_chunks, fail_after=1),
            on_error=errors.append,
            on_complete=lambda: completed.append(True),
        )

        assert len(engine.items) == 3
        assert len(errors) == 1
        assert run.error is errors[0]
        assert completed == []

    def test_callback_failure_does_not_abort(self, engine):
        def broken(items):
            raise RuntimeError("ui crashed")

        record = progress_record(0, 1, "I has a cat.", issue(2, 5, "has", "have")) + "\n"
        engine.analyze(FakeTransport([record]), on_data=broken)
        assert len(engine.items) == 1

    def test_code_block_excluded_from_request(self):
        engine = CorrectionEngine(doc(p("ab"), code_block("x = 1"), p("cd")))
        transport = FakeTransport([])
        engine.analyze(transport)
        assert transport.requests == ["ab\ncd\n"]
