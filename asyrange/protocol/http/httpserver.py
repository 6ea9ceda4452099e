from asyrange import logger
from asyrange._version import __version__
from asyrange.common.target import ServerTarget
from asyrange.common.connection import Connection
from asyrange.common.server import TCPServer
import asyncio
import datetime
import email.utils
import h11


class HTTPConnectionWrapper:
    def __init__(self, client_id, stream:Connection, log_callback=None, read_timeout=None):
        self.log_callback = log_callback
        self.client_id = client_id
        self.read_timeout = read_timeout
        self.stream = stream
        self.conn = h11.Connection(h11.SERVER)
        # Our Server: header
        self.ident = " ".join(
            [f"asyrange/{__version__}", h11.PRODUCT_ID]
        ).encode("ascii")

    async def debug(self, *args):
        msg = ' '.join([str(x) for x in args])
        if self.log_callback is not None:
            await self.log_callback(msg)
        else:
            logger.debug(msg)

    async def send(self, event):
        # The code below doesn't send ConnectionClosed, so we don't bother
        # handling it here either -- it would require that we do something
        # appropriate when 'data' is None.
        assert type(event) is not h11.ConnectionClosed
        data = self.conn.send(event)
        try:
            await self.stream.write(data)
        except BaseException:
            # peer is gone (or we got cancelled), this connection can't be used anymore
            self.conn.send_failed()
            raise

    async def _read_from_peer(self):
        if self.conn.they_are_waiting_for_100_continue:
            await self.debug("Sending 100 Continue")
            go_ahead = h11.InformationalResponse(
                status_code=100, headers=self.basic_headers()
            )
            await self.send(go_ahead)
        try:
            data = await asyncio.wait_for(self.stream.read_one(), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            await self.debug('[%s] Timeout reading from peer' % self.client_id)
            data = b""
        except OSError as exc:
            await self.debug('[%s] Error reading from peer: %s' % (self.client_id, exc))
            # They've stopped listening. Not much we can do about it here.
            data = b""
        self.conn.receive_data(data)

    async def next_event(self):
        while True:
            event = self.conn.next_event()
            if event is h11.NEED_DATA:
                await self._read_from_peer()
                continue
            return event

    async def shutdown_and_clean_up(self):
        try:
            await self.stream.close()
        except OSError:
            return

    def basic_headers(self):
        # HTTP requires these headers in all responses (client would do
        # something different here)
        return [
            ("Date", self.format_date_time().encode("ascii")),
            ("Server", self.ident),
        ]

    @staticmethod
    def format_date_time(dt=None):
        """Generate a RFC 7231 / RFC 9110 IMF-fixdate string"""
        if dt is None:
            dt = datetime.datetime.now(datetime.timezone.utc)
        return email.utils.format_datetime(dt, usegmt=True)


class HTTPServerHandler:
    """
    Base class of request handlers. A new instance serves each connection,
    requests are dispatched to do_<METHOD> coroutines which are expected to send
    a complete response through self._wrapper.
    """
    def __init__(self):
        self._wrapper:HTTPConnectionWrapper = None
        self._request_method = None

    def basic_headers(self):
        return self._wrapper.basic_headers()

    async def _process_request(self, wrapper:HTTPConnectionWrapper, request:h11.Request):
        self._wrapper = wrapper
        self._request_method = request.method
        method = request.method.decode("ascii")
        func = getattr(self, f"do_{method}", None)
        if func is None:
            return await self.send_simple(405, "Method Not Allowed")
        await func(request)

    async def send_simple(self, status_code, message='', extra_headers=None):
        """Sends a complete response with a short text/plain body"""
        body = message.encode('utf-8')
        headers = self.basic_headers()
        headers.extend([
            ("Content-Type", b"text/plain; charset=utf-8"),
            ("Content-Length", str(len(body)).encode("ascii")),
        ])
        if extra_headers is not None:
            headers.extend(extra_headers)
        if self._wrapper.conn.their_state is h11.SEND_BODY:
            # request body was not consumed, the connection can't be reused
            headers.append(("Connection", b"close"))
        await self._wrapper.send(h11.Response(status_code=status_code, headers=headers))
        if len(body) > 0 and self._request_method != b"HEAD":
            await self._wrapper.send(h11.Data(data=body))
        await self._wrapper.send(h11.EndOfMessage())


class HTTPServer:
    """
    Accepts connections on target and feeds requests to handlers created by
    handler_factory. At most max_workers requests are processed at the same time,
    further requests wait for a free slot.
    """
    def __init__(self, handler_factory, target:ServerTarget, max_workers:int = 10, read_timeout:float = None, log_callback=None):
        self.log_callback = log_callback
        self.target = target
        self.handler_factory = handler_factory
        self.max_workers = max_workers
        self.read_timeout = read_timeout

        self.tcpserver = None
        self.workers = None
        self.__main_task = None
        self.clients = set()
        self.id_counter = 0
        self.started_evt = asyncio.Event()

    async def debug(self, *args):
        msg = ' '.join([str(x) for x in args])
        if self.log_callback is not None:
            await self.log_callback(msg)
        else:
            logger.debug(msg)

    @property
    def address(self):
        if self.tcpserver is None:
            return None
        return self.tcpserver.address

    async def __aenter__(self):
        self.__main_task = asyncio.create_task(self.serve())
        started = asyncio.create_task(self.started_evt.wait())
        await asyncio.wait([started, self.__main_task], return_when=asyncio.FIRST_COMPLETED)
        if self.__main_task.done():
            started.cancel()
            # binding failed, surface the error
            self.__main_task.result()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.terminate()

    async def terminate(self):
        for client in list(self.clients):
            client.cancel()
        self.clients = set()
        if self.__main_task is not None:
            self.__main_task.cancel()
            try:
                await self.__main_task
            except asyncio.CancelledError:
                pass

    async def __handle_connection(self, connection:Connection):
        client_id = self.id_counter
        self.id_counter += 1
        wrapper = HTTPConnectionWrapper(client_id, connection, log_callback=self.log_callback, read_timeout=self.read_timeout)
        handler = self.handler_factory()
        await self.debug('[%s] New client connected from %s' % (client_id, connection.get_peer()))
        try:
            while True:
                if wrapper.conn.states == {h11.CLIENT: h11.DONE, h11.SERVER: h11.DONE}:
                    wrapper.conn.start_next_cycle()
                    continue

                if wrapper.conn.states != {h11.CLIENT: h11.IDLE, h11.SERVER: h11.IDLE}:
                    await self.debug('[%s] Connection state not reusable: %s' % (client_id, wrapper.conn.states))
                    break

                try:
                    event = await wrapper.next_event()
                except h11.RemoteProtocolError as exc:
                    await self.debug('[%s] Bad request: %s' % (client_id, exc))
                    if wrapper.conn.our_state in (h11.IDLE, h11.SEND_RESPONSE):
                        handler._wrapper = wrapper
                        handler._request_method = None
                        await handler.send_simple(exc.error_status_hint, 'Bad Request')
                    break

                if type(event) is h11.Request:
                    async with self.workers:
                        await handler._process_request(wrapper, event)
                    continue
                if type(event) is h11.ConnectionClosed:
                    break
                await self.debug('[%s] Unexpected event type %s' % (client_id, type(event)))
                break
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception('[%s] Error while handling connection' % client_id)
        finally:
            await wrapper.shutdown_and_clean_up()
            self.clients.discard(asyncio.current_task())

    async def serve(self):
        self.workers = asyncio.Semaphore(self.max_workers)
        self.tcpserver = TCPServer(self.target)
        await self.tcpserver.start()
        self.started_evt.set()
        try:
            async for connection in self.tcpserver.serve():
                task = asyncio.create_task(self.__handle_connection(connection))
                self.clients.add(task)
        finally:
            self.tcpserver.close()
