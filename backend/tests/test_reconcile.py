from datetime import datetime, timedelta, timezone

from nacs_rental.services.chat.reconcile import Confirmed, Pending, reconcile

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
WINDOW = timedelta(seconds=30)


def pending(local_id, content, seconds=0, sender="mock-user-id"):
    return Pending(local_id, sender, "user", content, T0 + timedelta(seconds=seconds))


def confirmed(server_id, content, seconds=0, sender="mock-user-id"):
    return Confirmed(server_id, sender, "user", content, T0 + timedelta(seconds=seconds))


class TestReconcile:

    def test_confirmed_entry_replaces_pending(self):
        merged = reconcile([pending("temp_1", "Is the van available?")],
                           [confirmed("m1", "Is the van available? ", seconds=2)], WINDOW)
        assert [getattr(e, 'server_id', None) for e in merged] == ["m1"]

    def test_unmatched_pending_is_kept(self):
        merged = reconcile([pending("temp_1", "Hello")], [confirmed("m1", "Hi", seconds=1)], WINDOW)
        assert {type(e).__name__ for e in merged} == {"Pending", "Confirmed"}

    def test_outside_window_is_not_a_match(self):
        merged = reconcile([pending("temp_1", "Hello")], [confirmed("m1", "Hello", seconds=31)], WINDOW)
        assert len(merged) == 2

    def test_other_sender_is_not_a_match(self):
        merged = reconcile([pending("temp_1", "Hello")],
                           [confirmed("m1", "Hello", seconds=1, sender="mock-admin-id")], WINDOW)
        assert len(merged) == 2

    def test_each_confirmed_absorbs_one_pending(self):
        merged = reconcile(
            [pending("temp_1", "ok"), pending("temp_2", "ok", seconds=5)],
            [confirmed("m1", "ok", seconds=1)],
            WINDOW,
        )
        assert [type(e).__name__ for e in merged] == ["Confirmed", "Pending"]
        assert merged[1].local_id == "temp_2"

    def test_repeated_messages_pair_by_closest_time(self):
        merged = reconcile(
            [pending("temp_1", "ok"), pending("temp_2", "ok", seconds=10)],
            [confirmed("m1", "ok", seconds=1), confirmed("m2", "ok", seconds=11)],
            WINDOW,
        )
        assert [e.server_id for e in merged] == ["m1", "m2"]

    def test_result_is_ordered_by_timestamp(self):
        merged = reconcile(
            [pending("temp_1", "third", seconds=20)],
            [confirmed("m2", "second", seconds=10), confirmed("m1", "first")],
            WINDOW,
        )
        assert [e.content for e in merged] == ["first", "second", "third"]
