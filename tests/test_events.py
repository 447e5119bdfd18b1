import unittest

from poketerm.core.events import Event, EventBus, EventType


class EventBusTests(unittest.TestCase):
    def setUp(self):
        self.bus = EventBus(history_limit=3)

    def test_subscribe_and_emit(self):
        received = []
        self.bus.subscribe(EventType.CAPTURED, received.append)
        self.bus.emit(Event(EventType.CAPTURED, data={"dex_id": 1}))
        self.bus.emit(Event(EventType.PHASE_CHANGED))

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].data["dex_id"], 1)

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.bus.subscribe(EventType.CAPTURED, received.append)
        unsubscribe()
        self.bus.emit(Event(EventType.CAPTURED))
        self.assertEqual(received, [])

    def test_failing_handler_does_not_block_others(self):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        self.bus.subscribe(EventType.CAPTURED, broken)
        self.bus.subscribe(EventType.CAPTURED, received.append)
        with self.assertLogs("poketerm.core.events", level="ERROR"):
            self.bus.emit(Event(EventType.CAPTURED))
        self.assertEqual(len(received), 1)

    def test_global_handlers_see_everything(self):
        received = []
        self.bus.subscribe_all(received.append)
        self.bus.emit(Event(EventType.INPUT_LINE))
        self.bus.emit(Event("custom"))
        self.assertEqual([e.type for e in received], [EventType.INPUT_LINE, "custom"])

    def test_history_is_bounded(self):
        for i in range(5):
            self.bus.emit(Event(EventType.INPUT_LINE, data={"i": i}))
        history = self.bus.get_history()
        self.assertEqual([e.data["i"] for e in history], [2, 3, 4])

        self.bus.clear_history()
        self.assertEqual(self.bus.get_history(), [])


if __name__ == "__main__":
    unittest.main()
