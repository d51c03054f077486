"""
Runs work on a background thread. Each connection attempt and each data channel owns one.
"""
import logging
import threading
import time

logger = logging.getLogger(__name__)


class AsyncLoop:
    """ Repeatedly calls loop() on a background daemon thread until stopped.
        Exceptions raised by loop() are passed to exception_handler(), which logs them.

        Subclasses that do a single unit of work call stop() at the end of loop().
    """

    def __init__(self, name=None, log=logger):
        """
        :param name the name given to the background thread
        """
        self.name = name
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log

    def start(self):
        """
        Starts the background thread. Calling start() a second time has no effect.
        """
        if self.background_thread is None:
            t = threading.Thread(target=self._run, name=self.name, daemon=True)
            self.background_thread = t
            t.start()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        """ The processing loop for the background thread.
             Calls loop() for as long as the stop signal is not received.
        """
        self._do(self.startup)
        while self.running():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.debug("background thread %s exiting" % self.name)

    def _do(self, callme):
        """ runs a function and captures any exceptions """
        try:
            callme()
        except Exception as e:
            time.sleep(0)
            self.exception_handler(e)

    def startup(self):
        """ template method called when the thread starts"""
        pass

    def loop(self):
        """ template method called repeatedly while running """
        raise NotImplementedError

    def shutdown(self):
        """ template method called when the thread exits """
        pass

    def running(self):
        return not self.stop_event.is_set()

    def stop(self):
        """
        Signals the loop to stop. This does not wait for the thread - a thread blocked
        on I/O only notices once the I/O returns. See join().
        """
        self.stop_event.set()

    def join(self, timeout=None):
        """
        Waits for the background thread to finish.
        :return: True if the thread has finished (or was never started.)
        """
        thread = self.background_thread
        if thread is None or thread is threading.current_thread():
            return thread is None
        thread.join(timeout)
        return not thread.is_alive()

    @property
    def alive(self):
        thread = self.background_thread
        return thread is not None and thread.is_alive()
