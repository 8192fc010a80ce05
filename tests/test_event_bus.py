from __future__ import annotations

from dbtcache.adapters.event_bus import ObserverRegistry


def test_delivery_follows_registration_order() -> None:
    registry = ObserverRegistry()
    seen: list[tuple[str, object]] = []
    for name in ("o1", "o2", "o3"):
        registry.subscribe(lambda event, name=name: seen.append((name, event)))

    delivered = registry.publish("evt")

    assert seen == [("o1", "evt"), ("o2", "evt"), ("o3", "evt")]
    assert delivered == 3


def test_unsubscribe_stops_delivery() -> None:
    registry = ObserverRegistry()
    seen: list[str] = []
    first = registry.subscribe(lambda e: seen.append("first"))
    registry.subscribe(lambda e: seen.append("second"))

    first.unsubscribe()
    registry.publish(object())

    assert seen == ["second"]
    assert not first.active
    assert len(registry) == 1


def test_unsubscribe_twice_is_harmless() -> None:
    registry = ObserverRegistry()
    sub = registry.subscribe(lambda e: None)
    sub.unsubscribe()
    sub.unsubscribe()
    assert len(registry) == 0


def test_observer_may_unsubscribe_during_delivery() -> None:
    registry = ObserverRegistry()
    seen: list[str] = []
    holder: dict = {}

    def once(event) -> None:
        seen.append("once")
        holder["sub"].unsubscribe()

    holder["sub"] = registry.subscribe(once)
    registry.subscribe(lambda e: seen.append("always"))

    registry.publish(1)
    registry.publish(2)

    assert seen == ["once", "always", "always"]


def test_failing_observer_is_isolated(caplog) -> None:
    registry = ObserverRegistry()
    seen: list[str] = []

    def broken(event) -> None:
        raise RuntimeError("observer bug")

    registry.subscribe(broken)
    registry.subscribe(lambda e: seen.append("ok"))

    delivered = registry.publish("evt")

    assert seen == ["ok"]
    assert delivered == 1
    assert "Observer 1 failed" in caplog.text
