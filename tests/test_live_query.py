import asyncio
from taxitao.services.live_query import LiveQuery


def test_first_result_always_delivered_then_only_changes():
    values = iter([None, None, 1, 1, 2])
    delivered = []
    live = LiveQuery(lambda: next(values), delivered.append)

    async def run():
        return [await live.poll() for _ in range(5)]

    fired = asyncio.run(run())
    assert fired == [True, False, True, False, True]
    assert delivered == [None, 1, 2]


def test_async_query_and_callback():
    delivered = []

    async def query():
        return {"status": "pending"}

    async def on_change(value):
        delivered.append(value)

    asyncio.run(LiveQuery(query, on_change).poll())
    assert delivered == [{"status": "pending"}]


def test_subscribe_and_unsubscribe():
    counter = {"n": 0}
    delivered = []

    def query():
        counter["n"] += 1
        return counter["n"]

    async def run():
        live = LiveQuery(query, delivered.append, interval=0.01).subscribe()
        assert live.active
        await asyncio.sleep(0.1)
        live.unsubscribe()
        assert not live.active
        seen = len(delivered)
        await asyncio.sleep(0.05)
        return seen

    seen = asyncio.run(run())
    assert seen >= 2
    assert len(delivered) == seen


def test_failed_poll_is_logged_and_polling_continues(caplog):
    calls = {"n": 0}
    delivered = []

    def query():
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("database went away")
        return calls["n"]

    async def run():
        live = LiveQuery(query, delivered.append, interval=0.01).subscribe()
        await asyncio.sleep(0.1)
        active = live.active
        live.unsubscribe()
        return active

    assert asyncio.run(run())
    assert delivered[0] == 1
    assert 3 in delivered
    assert "Live query poll failed" in caplog.text


def test_stops_after_repeated_failures():
    def query():
        raise RuntimeError("database went away")

    async def run():
        live = LiveQuery(query, lambda value: None, interval=0.01, max_failures=3).subscribe()
        await asyncio.wait_for(live.wait(), timeout=1)
        return live.active

    assert asyncio.run(run()) is False
