"""


Point-to-point RFCOMM connections

- Transport: the platform socket primitives. listen() for a service identifier, open a client
  socket to a peer, cancel any ongoing device discovery. RfcommTransport uses Bluetooth sockets,
  TcpTransport provides the same contract over TCP for development.
- Attempt: one in-flight accept (ConnectionAcceptor) or connect (ConnectionInitiator). Each
  runs its single blocking call on its own thread and reports the outcome to the manager.
- DataChannel: owns a connected socket. Reads on a background thread and fires a frame event
  for each chunk received. Writes happen on the caller's thread.
- ConnectionManager: the orchestrator. Starts attempts, promotes the first socket to arrive
  into a DataChannel, retires any previous channel, forwards writes, and fires the
  connection events (btchat.events).


Threading

Everything that touches a socket blocks. Rather than run an event loop, each attempt and each
channel gets a daemon thread. The only way to interrupt a blocked accept/connect/recv is to
close the socket from another thread, so cancel() on attempts and channels means "close the
socket and set the stop flag".

The manager serializes its transitions with a single lock. Attempts and channels never change
manager state themselves - they call back into the manager, which checks that the caller is
still the current attempt/channel before acting. A connect that completes after stop() is
therefore dropped, and its socket closed.

Events are fired after the manager lock is released, on whichever thread caused them
(usually an attempt or channel thread). Use a QueuedEventSource and call publish() to move
them onto a thread of your choosing.

"""
