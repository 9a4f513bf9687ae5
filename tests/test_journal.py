"""
Cycle journal tests.

Coverage:
1. Hash chaining and resume on reopen
2. Tamper and truncation detection
3. In-doubt broadcast detection
"""

import json

from federator.journal.models import BroadcastKind, JournalEntryType
from federator.journal.writer import CycleJournal


class TestJournalWriter:
    def test_entries_are_chained(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        first = journal.cycle_started("c1")
        second = journal.checkpoint_saved("lastBlock", 90)

        assert first.seq == 1
        assert first.prev_hash is None
        assert second.seq == 2
        assert second.prev_hash == first.entry_hash
        assert journal.verify_integrity() == (True, None)

    def test_reopen_resumes_chain(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        last = journal.cycle_started("c1")

        reopened = CycleJournal(tmp_dir, sync=False)
        assert reopened.entry_count == 1
        entry = reopened.cycle_completed("c1", {"state": "idle"})

        assert entry.seq == 2
        assert entry.prev_hash == last.entry_hash
        assert reopened.verify_integrity() == (True, None)

    def test_one_json_object_per_line(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        journal.cycle_started("c1")
        journal.transfer_skipped("0xtx", 2, "already processed")

        with open(journal.path, encoding="utf-8") as f:
            lines = [json.loads(line) for line in f]
        assert [line["entry_type"] for line in lines] == ["cycle.started", "transfer.skipped"]
        assert lines[1]["payload"] == {"tx_hash": "0xtx", "log_index": 2, "reason": "already processed"}


class TestIntegrity:
    def test_tampered_payload_detected(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        journal.checkpoint_saved("lastBlock", 90)
        journal.checkpoint_saved("lastBlock", 120)

        with open(journal.path, encoding="utf-8") as f:
            lines = f.readlines()
        lines[0] = lines[0].replace('"value": 90', '"value": 95')
        with open(journal.path, "w", encoding="utf-8") as f:
            f.writelines(lines)

        ok, reason = journal.verify_integrity()
        assert not ok
        assert "seq=1" in reason

    def test_removed_entry_breaks_chain(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        for i in range(3):
            journal.cycle_started(f"c{i}")

        with open(journal.path, encoding="utf-8") as f:
            lines = f.readlines()
        with open(journal.path, "w", encoding="utf-8") as f:
            f.writelines([lines[0], lines[2]])

        ok, reason = journal.verify_integrity()
        assert not ok
        assert "chain broken" in reason

    def test_torn_last_line_is_ignored(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        journal.cycle_started("c1")
        with open(journal.path, "a", encoding="utf-8") as f:
            f.write('{"seq": 2, "entry_ty')

        assert len(journal.read_all()) == 1
        assert CycleJournal(tmp_dir, sync=False).entry_count == 1


class TestInDoubt:
    def test_started_without_outcome_is_in_doubt(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        done = journal.broadcast_started(BroadcastKind.CONFIRM, {"transaction_id": 1})
        journal.broadcast_completed(done, "0xhash")
        failed = journal.broadcast_started(BroadcastKind.CONFIRM, {"transaction_id": 2})
        journal.broadcast_failed(failed, "reverted")
        open_id = journal.broadcast_started(BroadcastKind.SUBMIT_PROPOSAL, {"source_tx_hash": "0xtx"})

        in_doubt = journal.in_doubt()

        assert len(in_doubt) == 1
        assert in_doubt[0]["broadcast_id"] == open_id
        assert in_doubt[0]["kind"] == "submit_proposal"
        assert "started_at" in in_doubt[0]

    def test_entry_types_round_trip(self, tmp_dir):
        journal = CycleJournal(tmp_dir, sync=False)
        journal.cycle_failed("c1", "processing", "boom")
        entry = CycleJournal(tmp_dir, sync=False).read_all()[0]
        assert entry.entry_type == JournalEntryType.CYCLE_FAILED
        assert entry.payload == {"cycle_id": "c1", "state": "processing", "reason": "boom"}
