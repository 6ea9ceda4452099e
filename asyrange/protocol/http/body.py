import h11
from asyrange.errors import IoFailure


class RequestBody:
    """
    Async byte stream over the body of the request currently being processed.
    Data is pulled from the connection only when a read needs it, so whatever
    has not been read yet stays with the peer.
    """
    def __init__(self, wrapper):
        self.wrapper = wrapper
        self.buffer = bytearray()
        self.eof = False

    async def _fill(self):
        try:
            event = await self.wrapper.next_event()
        except h11.RemoteProtocolError as e:
            raise IoFailure(e)
        if type(event) is h11.Data:
            self.buffer += event.data
        elif type(event) is h11.EndOfMessage:
            self.eof = True
        else:
            raise IoFailure(message='Unexpected event while reading request body: %s' % type(event).__name__)

    async def read(self, n:int = -1):
        if n < 0:
            while not self.eof:
                await self._fill()
            data = bytes(self.buffer)
            self.buffer.clear()
        else:
            while len(self.buffer) == 0 and not self.eof:
                await self._fill()
            data = bytes(self.buffer[:n])
            del self.buffer[:n]
        return data
