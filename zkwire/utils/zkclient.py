'''
Created on 2026/10/18

Synchronous ZooKeeper client
'''

from zkwire.config import Configurable, config
from zkwire.protocol.zookeeper import ZooKeeper, ZooKeeperSession, parse_connect_string
from zkwire.utils.exceptions import ZooKeeperConnectionException, ZooKeeperTimeoutException,\
        ZooKeeperServerException, ZooKeeperAuthFailedException, ZooKeeperSessionUnavailable,\
        ZooKeeperProtocolException
from zkwire.utils.jsonencoder import NullDataCodec
from zkwire.utils.logger import ContextAdapter
import zkwire.utils.zookeeper as zk
import logging
import socket
import threading

PERSISTENT = 'persistent'
EPHEMERAL = 'ephemeral'

WATCH_KINDS = ('exists', 'get_data', 'get_children')

_string_list = zk.vector(zk.ustring)

def _str(b, encoding = 'utf-8'):
    if b is None:
        return ''
    elif isinstance(b, bytes):
        try:
            return b.decode(encoding)
        except UnicodeDecodeError:
            raise ZooKeeperProtocolException('Server returned a path which is not %s: %r' % (encoding, b))
    else:
        return str(b)


@config('zookeeperclient')
class ZooKeeperClient(Configurable):
    """
    ZooKeeper client on a single connection. Every call blocks until the reply is
    received; calls from different threads are serialized.

    There is no automatic reconnection: after a connection or protocol error, close the
    client and connect again. An expired session is replaced by calling `connect()`.
    """
    # Comma separated server list, host:port. Only the first server is used.
    _default_connectstring = '127.0.0.1:2181'
    # Timeout in seconds for connecting and for every send/receive
    _default_timeout = 3.0
    # Requested session timeout in seconds
    _default_sessiontimeout = 30
    # Default limit in seconds for watch(); None waits until an event arrives
    _default_watchtimeout = None
    def __init__(self, connect_string = None, timeout = None, session_timeout = None,
                 connector = None, datacodec = None, protocol = None):
        '''
        :param connect_string: "host1:port1,host2:port2"

        :param timeout: I/O timeout in seconds

        :param session_timeout: requested session timeout in seconds

        :param connector: `connector((host, port), timeout)` returns a connection object with
                          `sendall`, `recv`, `settimeout` and `close`; a TCP socket by default

        :param datacodec: codec for non-bytes node data, see `zkwire.utils.jsonencoder`
        '''
        Configurable.__init__(self)
        if connect_string is not None:
            self.connectstring = connect_string
        if timeout is not None:
            self.timeout = timeout
        if session_timeout is not None:
            self.sessiontimeout = session_timeout
        if protocol is None:
            self.protocol = ZooKeeper()
        else:
            self.protocol = protocol
        self.serverlist = parse_connect_string(self.connectstring, self.protocol.defaultport)
        if not self.serverlist:
            raise ValueError('Empty connect string')
        if connector is None:
            self._connector = self.protocol.create_connection
        else:
            self._connector = connector
        if datacodec is None:
            self.datacodec = NullDataCodec()
        else:
            self.datacodec = datacodec
        self.session = ZooKeeperSession()
        self.connection = None
        self._lock = threading.RLock()
        self._logger = ContextAdapter(logging.getLogger(__name__ + '.ZooKeeperClient'), {'context': None})

    @property
    def state(self):
        return self.session.state
    @property
    def connected(self):
        return self.connection is not None and self.session.state == ZooKeeperSession.CONNECTED
    @property
    def session_id(self):
        return self.session.session_id
    @property
    def session_password(self):
        return self.session.session_password
    @property
    def negotiated_timeout_ms(self):
        return self.session.negotiated_timeout_ms

    def set_timeout(self, timeout):
        '''
        Change the I/O timeout, also for the current connection
        '''
        with self._lock:
            self.timeout = timeout
            if self.connection is not None:
                self.connection.settimeout(timeout)

    def connect(self):
        '''
        Connect to the first server and create a new session. Does nothing if the client
        is already connected.
        '''
        with self._lock:
            if self.connected:
                return
            if self.connection is not None:
                # An expired session keeps its connection until here
                stale = self.connection
                stalestate = self.session.state
                self.connection = None
                self.session.reset()
                try:
                    stale.close()
                except OSError:
                    self._logger.debug('Close stale connection raised', exc_info = True)
                self._logger.info('Stale connection closed, session was %s', stalestate)
                self._logger.extra['context'] = None
            host, port = self.serverlist[0]
            if len(self.serverlist) > 1:
                self._logger.debug('Use %s:%d, %d other servers are ignored', host, port, len(self.serverlist) - 1)
            try:
                conn = self._connector((host, port), self.timeout)
            except socket.timeout:
                raise ZooKeeperTimeoutException('Connect to %s:%d timeout' % (host, port))
            except OSError as exc:
                raise ZooKeeperConnectionException('Connect to %s:%d failed: %s' % (host, port, exc))
            try:
                conn.settimeout(self.timeout)
                self.protocol.handshake(conn, self.session, int(self.sessiontimeout * 1000.0))
            except Exception:
                self._logger.warning('Handshake failed with %s:%d', host, port)
                try:
                    conn.close()
                except OSError:
                    self._logger.debug('Close connection after handshake failure raised', exc_info = True)
                raise
            self.connection = conn
            self._logger.extra['context'] = 'session 0x%016x' % (self.session.session_id & 0xffffffffffffffff,)
            self._logger.info('Connected to %s:%d, negotiated session timeout %d ms',
                              host, port, self.session.negotiated_timeout_ms)

    def close(self):
        '''
        Close the connection. The session becomes disconnected even if closing fails.
        '''
        with self._lock:
            conn = self.connection
            self.connection = None
            if conn is None:
                self.session.reset()
                return
            try:
                conn.close()
            except OSError as exc:
                raise ZooKeeperConnectionException('Close connection failed: %s' % (exc,))
            finally:
                self.session.reset()
                self._logger.info('Connection closed')
                self._logger.extra['context'] = None

    def _request(self, opcode, request):
        with self._lock:
            if self.connection is None:
                raise ZooKeeperSessionUnavailable(self.session.state)
            return self.protocol.request(self.connection, self.session, opcode, request._tobytes())

    def _check(self, response, path):
        if response.err != zk.ZOO_ERR_OK:
            raise ZooKeeperServerException.fromcode(response.err, path)

    def _encode(self, data):
        if data is None or isinstance(data, bytes):
            return data
        elif isinstance(data, bytearray):
            return bytes(data)
        else:
            return self.datacodec.encode(data)

    def exists(self, path, watch = False):
        '''
        :return: True if the node exists. A missing node is not an error.
        '''
        response = self._request(zk.ZOO_EXISTS_OP, zk.exists(path, watch))
        if response.err == zk.ZOO_ERR_NONODE:
            return False
        self._check(response, path)
        return len(response.payload) > 0

    def get_data(self, path, watch = False):
        '''
        :return: node data as bytes; a node without data returns b''
        '''
        response = self._request(zk.ZOO_GETDATA_OP, zk.getdata(path, watch))
        self._check(response, path)
        data = zk.z_buffer.create(response.payload)
        return b'' if data is None else data

    def get_object(self, path, watch = False):
        '''
        Node data decoded with the data codec
        '''
        return self.datacodec.decode(self.get_data(path, watch))

    def create(self, path, data = b'', mode = PERSISTENT, sequential = False, acl = None):
        '''
        Create a node.

        :param mode: 'persistent' or 'ephemeral'

        :param sequential: let the server append a sequence number to the name

        :param acl: list of `zk.ACL`; world:anyone with all permissions by default

        :return: the created path, which differs from `path` for sequential nodes
        '''
        if mode not in (PERSISTENT, EPHEMERAL):
            raise ValueError('Unknown create mode %r' % (mode,))
        request = zk.create(path, self._encode(data), mode == EPHEMERAL, sequential, acl)
        response = self._request(zk.ZOO_CREATE_OP, request)
        self._check(response, path)
        return _str(zk.ustring.create(response.payload))

    def get_children(self, path, watch = False):
        response = self._request(zk.ZOO_GETCHILDREN_OP, zk.getchildren(path, watch))
        self._check(response, path)
        children = _string_list.create(response.payload)
        if children is None:
            return []
        return [_str(c) for c in children]

    def delete(self, path, version = -1):
        '''
        Delete a node. version = -1 matches any version.
        '''
        response = self._request(zk.ZOO_DELETE_OP, zk.delete(path, version))
        self._check(response, path)

    def set_data(self, path, data, version = -1):
        response = self._request(zk.ZOO_SETDATA_OP, zk.setdata(path, self._encode(data), version))
        self._check(response, path)

    def add_auth(self, scheme, credential):
        response = self._request(zk.ZOO_SETAUTH_OP, zk.auth(scheme, credential))
        if response.err != zk.ZOO_ERR_OK:
            raise ZooKeeperAuthFailedException(response.err)
        self._logger.info('Authenticated with scheme %r', scheme)

    def watch(self, path, kind, timeout = None):
        '''
        Register a watch with `kind` ('exists', 'get_data' or 'get_children') and wait for
        the event.

        :param timeout: seconds to wait for the event; default to `watchtimeout`
                        configuration, None to wait forever

        :return: `WatchedEvent(type, state, path)`
        '''
        if kind not in WATCH_KINDS:
            raise ValueError('Unknown watch kind %r' % (kind,))
        if timeout is None:
            timeout = self.watchtimeout
        with self._lock:
            getattr(self, kind)(path, True)
            conn = self.connection
            conn.settimeout(timeout)
            try:
                return self.protocol.wait_watcher(conn, self.session)
            finally:
                conn.settimeout(self.timeout)
