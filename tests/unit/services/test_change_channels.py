from unittest.mock import MagicMock

from race_terminal.core.domain.session import ChangeNotification
from race_terminal.core.services.change_channels import BroadcastHub, LocalChangeChannel


def test_local_channel_delivers_to_every_listener() -> None:
    channel = LocalChangeChannel()
    first, second = MagicMock(), MagicMock()
    channel.subscribe(first)
    channel.subscribe(second)
    notification = ChangeNotification(key="k", value="v")

    channel.publish(notification)

    first.assert_called_once_with(notification)
    second.assert_called_once_with(notification)


def test_unsubscribe_stops_delivery() -> None:
    channel = LocalChangeChannel()
    listener = MagicMock()
    unsubscribe = channel.subscribe(listener)

    unsubscribe()
    unsubscribe()
    channel.publish(ChangeNotification(key="k"))

    listener.assert_not_called()


def test_failing_listener_does_not_block_others() -> None:
    channel = LocalChangeChannel()
    channel.subscribe(MagicMock(side_effect=RuntimeError("listener bug")))
    survivor = MagicMock()
    channel.subscribe(survivor)

    channel.publish(ChangeNotification(key="k"))

    survivor.assert_called_once()


def test_hub_stamps_origin_and_skips_sender() -> None:
    hub = BroadcastHub()
    a, b, c = hub.channel("a"), hub.channel("b"), hub.channel("c")
    seen_a, seen_b, seen_c = MagicMock(), MagicMock(), MagicMock()
    a.subscribe(seen_a)
    b.subscribe(seen_b)
    c.subscribe(seen_c)

    a.publish(ChangeNotification(key="k", value="v"))

    seen_a.assert_not_called()
    for listener in (seen_b, seen_c):
        listener.assert_called_once()
        assert listener.call_args.args[0] == ChangeNotification(key="k", value="v", origin="a")


def test_closed_channel_leaves_the_hub() -> None:
    hub = BroadcastHub()
    a, b = hub.channel("a"), hub.channel("b")
    listener = MagicMock()
    b.subscribe(listener)

    b.close()
    a.publish(ChangeNotification(key="k"))

    listener.assert_not_called()
    assert hub.origins == ["a"]
