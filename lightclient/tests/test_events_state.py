import pytest

from lightclient.events import TOPIC_BLOCK, TOPIC_LOG, TOPIC_RUNNING, EventBus
from lightclient.state import LightClientState, ObserverSurface
from lightclient.types import Block, Matrix


@pytest.mark.asyncio
async def test_topic_subscription_receives_only_its_topic():
    bus = EventBus()
    sub = bus.subscribe(TOPIC_RUNNING)
    bus.publish(TOPIC_BLOCK, None)
    bus.publish(TOPIC_RUNNING, True)
    events = sub.drain()
    assert [(e.topic, e.payload) for e in events] == [(TOPIC_RUNNING, True)]


@pytest.mark.asyncio
async def test_wildcard_sees_everything_in_order():
    bus = EventBus()
    sub = bus.subscribe("*")
    bus.publish(TOPIC_BLOCK, 1)
    bus.publish(TOPIC_RUNNING, 2)
    events = sub.drain()
    assert [e.payload for e in events] == [1, 2]
    assert events[0].seq < events[1].seq


@pytest.mark.asyncio
async def test_unknown_topic_rejected():
    bus = EventBus()
    with pytest.raises(ValueError):
        bus.subscribe("nope")


@pytest.mark.asyncio
async def test_full_subscriber_drops_without_blocking():
    bus = EventBus()
    sub = bus.subscribe(TOPIC_LOG, max_queue=2)
    for i in range(5):
        bus.publish(TOPIC_LOG, i)
    assert sub.pending() == 2
    assert bus.snapshot()["dropped"] == 3


@pytest.mark.asyncio
async def test_close_ends_async_iteration():
    bus = EventBus()
    sub = bus.subscribe(TOPIC_LOG)
    bus.publish(TOPIC_LOG, "a")
    bus.close()
    seen = [evt.payload async for evt in sub]
    assert seen == ["a"]
    assert sub.closed()


@pytest.mark.asyncio
async def test_state_setters_publish_snapshots():
    bus = EventBus()
    state = LightClientState(bus, network="Turing", history_size=2)
    sub = bus.subscribe("*")

    b = Block(network="Turing", number=1, hash="0x1")
    state.set_running(True)
    state.set_running(True)  # unchanged: no event
    state.set_current_block(b)
    state.set_matrix(Matrix(max_row=1, max_col=1, total_cell_count=1))
    state.push_history(b)

    topics = [e.topic for e in sub.drain()]
    assert topics == ["running", "block", "matrix", "history"]


@pytest.mark.asyncio
async def test_reset_run_clears_history_block_and_matrix():
    bus = EventBus()
    state = LightClientState(bus, network="Turing")
    b = Block(network="Turing", number=1, hash="0x1")
    state.set_current_block(b)
    state.push_history(b)
    state.set_matrix(Matrix(max_row=2, max_col=2))
    state.reset_run()
    snap = state.snapshot()
    assert snap.current_block is None
    assert snap.history == ()
    assert snap.matrix == Matrix.empty()


@pytest.mark.asyncio
async def test_event_log_is_bounded_and_resettable():
    bus = EventBus()
    state = LightClientState(bus, network="Turing", log_limit=3)
    for i in range(5):
        state.log.append(f"m{i}")
    assert state.log.messages() == ("m2", "m3", "m4")
    state.log.reset("Initiating script for Turing")
    assert state.log.messages() == ("Initiating script for Turing",)


@pytest.mark.asyncio
async def test_observer_surface_is_read_only_view():
    bus = EventBus()
    state = LightClientState(bus, network="Mainnet")
    obs = ObserverSurface(state)
    assert obs.network == "Mainnet"
    assert not obs.running
    with pytest.raises(AttributeError):
        obs.network = "Turing"  # type: ignore[misc]
    sub = obs.subscribe(TOPIC_RUNNING)
    state.set_running(True)
    assert obs.running
    assert sub.get_nowait().payload is True
