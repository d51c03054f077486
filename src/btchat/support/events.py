import threading
from queue import Queue, Empty


class EventSource(object):
    """
    A list of handlers that are called with each event fired.
    Handlers are invoked on the thread that fires the event.
    """

    def __init__(self):
        self._handlers = []
        self._lock = threading.Lock()

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        with self._lock:
            self._handlers.append(handler)
        return self

    def remove(self, handler):
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
        return self

    def handlers(self):
        with self._lock:
            return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def fire_all(self, events):
        self._fire_all(events)

    def _fire_all(self, events):
        for e in events:
            self._fire(e)

    def _fire(self, *args, **kwargs):
        # a snapshot, so handlers can remove themselves
        for handler in self.handlers():
            handler(*args, **kwargs)


class QueuedEventSource(EventSource):
    """
    fire() posts events to a queue rather than dispatching them. The queued events
    are dispatched on the thread that calls publish().
    This lets a UI thread receive events produced by the connection threads.
    """
    def __init__(self):
        super().__init__()
        self.event_queue = Queue()

    def fire(self, event):
        self.event_queue.put(event)

    def fire_all(self, events):
        for e in events:
            self.event_queue.put(e)

    def publish(self):
        """ dispatches any queued events on the calling thread.
        :return: the number of events dispatched
        """
        events = []
        while True:
            try:
                events.append(self.event_queue.get_nowait())
            except Empty:
                break
        if events:
            self._fire_all(events)
        return len(events)
