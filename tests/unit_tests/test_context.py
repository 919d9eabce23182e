from __future__ import annotations

import threading

from chanlog.context import GlobalContext, GlobalContextProcessor


class TestGlobalContext:
    def test_set_get_remove(self) -> None:
        ctx = GlobalContext()
        ctx.set("request_id", "r-1")

        assert ctx.get("request_id") == "r-1"
        assert "request_id" in ctx
        assert len(ctx) == 1

        ctx.remove("request_id")
        ctx.remove("never-set")
        assert ctx.get("request_id", "gone") == "gone"
        assert len(ctx) == 0

    def test_update_and_clear(self) -> None:
        ctx = GlobalContext()
        ctx.update({"a": 1}, b=2)
        assert sorted(ctx) == ["a", "b"]

        ctx.clear()
        assert ctx.all() == {}

    def test_all_returns_a_snapshot(self) -> None:
        ctx = GlobalContext()
        ctx.set("a", 1)
        snapshot = ctx.all()
        snapshot["b"] = 2
        ctx.set("c", 3)

        assert snapshot == {"a": 1, "b": 2}
        assert ctx.all() == {"a": 1, "c": 3}

    def test_concurrent_writers(self) -> None:
        ctx = GlobalContext()

        def writer(n: int) -> None:
            for i in range(200):
                ctx.set(f"w{n}-{i}", i)
                ctx.all()

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(ctx) == 800


class TestGlobalContextProcessor:
    def test_merges_current_contents(self) -> None:
        ctx = GlobalContext()
        processor = GlobalContextProcessor(ctx)

        assert processor(None, "info", {"event": "a"}) == {"event": "a"}
        ctx.set("user", "bob")
        assert processor(None, "info", {"event": "b"}) == {"event": "b", "user": "bob"}

    def test_record_values_take_precedence(self) -> None:
        ctx = GlobalContext()
        ctx.update(user="global", channel="spoofed")
        processor = GlobalContextProcessor(ctx)

        event = processor(None, "info", {"event": "x", "channel": "Root", "user": "local"})

        assert event == {"event": "x", "channel": "Root", "user": "local"}
