'''
Created on 2026/10/18

ZooKeeper protocol engine on a blocking byte-stream connection: frame I/O, the CONNECT
handshake, request/reply correlation and watcher events.
'''

from zkwire.config import defaultconfig
from zkwire.protocol.protocol import Protocol
import zkwire.utils.zookeeper as zk
from zkwire.utils.zookeeper import uint32, to_signed32, WATCHER_EVENT_XID,\
        ZOO_SYNC_CONNECTED_STATE, ZOO_EXPIRED_STATE
from zkwire.utils.exceptions import ZooKeeperConnectionException, ZooKeeperTimeoutException,\
        ZooKeeperProtocolException, ZooKeeperTruncatedFrameException, ZooKeeperShortReadException,\
        ZooKeeperHandshakeException, ZooKeeperRequestTooLargeException, ZooKeeperSessionUnavailable,\
        ZooKeeperSessionExpiredException
from collections import namedtuple
import logging
import socket

ZooKeeperResponse = namedtuple('ZooKeeperResponse', ('xid', 'zxid', 'err', 'payload'))

WatchedEvent = namedtuple('WatchedEvent', ('type', 'state', 'path'))

SessionRecord = namedtuple('SessionRecord', ('session_id', 'passwd', 'timeout', 'readonly'))

# xid + zxid + err
REPLY_HEADER_SIZE = 16


def parse_connect_string(connect_string, defaultport = 2181):
    '''
    Split "host1:port1,host2:port2" into [(host, port), ...]. IPv6 addresses must be
    written as [addr]:port.
    '''
    servers = []
    for item in connect_string.split(','):
        item = item.strip()
        if not item:
            continue
        if item.startswith('['):
            host, _, rest = item[1:].partition(']')
            port = rest[1:] if rest.startswith(':') else ''
        elif item.count(':') == 1:
            host, _, port = item.partition(':')
        else:
            host, port = item, ''
        if not host:
            raise ValueError('Invalid server address %r' % (item,))
        try:
            port = int(port) if port else defaultport
        except ValueError:
            raise ValueError('Invalid port in server address %r' % (item,))
        servers.append((host, port))
    return servers


class ZooKeeperSession(object):
    '''
    Session identity and transaction id counter of one client. Only the handshake and the
    request dispatcher change it.
    '''
    DISCONNECTED = 'disconnected'
    CONNECTED = 'connected'
    EXPIRED = 'expired'
    def __init__(self):
        self.state = self.DISCONNECTED
        self.session_id = 0
        self.session_password = b''
        self.negotiated_timeout_ms = 0
        self.readonly = False
        self.last_zxid = 0
        self.xid = 1
    def allocate_xid(self):
        '''
        Return the next xid as an unsigned 32-bit value, wrapping on overflow
        '''
        xid = self.xid
        self.xid = (xid + 1) & 0xffffffff
        return xid
    def establish(self, record):
        self.session_id = record.session_id
        self.session_password = record.passwd
        self.negotiated_timeout_ms = record.timeout
        self.readonly = record.readonly
        self.last_zxid = 0
        self.xid = 1
        if record.timeout <= 0:
            self.state = self.EXPIRED
        else:
            self.state = self.CONNECTED
    def expire(self):
        self.state = self.EXPIRED
    def reset(self):
        self.state = self.DISCONNECTED
    def __repr__(self):
        return '<ZooKeeperSession 0x%016x %s timeout=%dms xid=%d>' % (self.session_id & 0xffffffffffffffff,
                                                                   self.state,
                                                                   self.negotiated_timeout_ms,
                                                                   self.xid)


# CONNECT reply decoding. Each attempt returns (record, None) or (None, reason).

def _decode_layout(structtype, data, maxpasswordlength, mintimeout = 0):
    r = structtype.parse(data)
    if r is None:
        return (None, 'not enough bytes')
    reply, size = r
    extra = len(data) - size
    if extra not in (0, 1):
        return (None, '%d bytes left after the record' % (extra,))
    if reply.passwd is None:
        return (None, 'null password')
    if len(reply.passwd) > maxpasswordlength:
        return (None, 'password length %d exceeds %d' % (len(reply.passwd), maxpasswordlength))
    if reply.timeOut < mintimeout:
        return (None, 'timeout %d is out of range' % (reply.timeOut,))
    # An extra byte is the read-only flag
    readonly = extra == 1 and data[-1] != 0
    return (SessionRecord(reply.sessionId, reply.passwd, reply.timeOut, readonly), None)

def _decode_standard(data, maxpasswordlength):
    r = zk.ConnectResponse.parse(data)
    if r is not None and r[0].protocolVersion != 0:
        return (None, 'protocol version %d is not supported' % (r[0].protocolVersion,))
    return _decode_layout(zk.ConnectResponse, data, maxpasswordlength)

def _decode_password_first(data, maxpasswordlength):
    return _decode_layout(zk.ConnectResponsePasswordFirst, data, maxpasswordlength)

def _decode_timeout_first(data, maxpasswordlength):
    return _decode_layout(zk.ConnectResponseTimeoutFirst, data, maxpasswordlength)

def _decode_enveloped(data, maxpasswordlength):
    if len(data) <= REPLY_HEADER_SIZE:
        return (None, 'no data after the reply header')
    body = data[REPLY_HEADER_SIZE:]
    reasons = []
    for name, attempt in (('password-then-timeout', _decode_password_first),
                          ('timeout-then-password', _decode_timeout_first)):
        record, reason = attempt(body, maxpasswordlength)
        if record is not None:
            return (record, None)
        reasons.append('%s: %s' % (name, reason))
    return (None, ', '.join(reasons))

def _decode_scan(data, maxpasswordlength):
    # sessionId(8) + timeout(4) + password length(4) is the smallest record. A record must
    # end at the payload end (plus the read-only byte), so it cannot start earlier than
    # the longest possible record.
    for offset in range(max(1, len(data) - 17 - maxpasswordlength), len(data) - 15):
        body = data[offset:]
        for structtype in (zk.ConnectResponsePasswordFirst, zk.ConnectResponseTimeoutFirst):
            record, _ = _decode_layout(structtype, body, maxpasswordlength, 1)
            if record is not None:
                return (record, None)
    return (None, 'no consistent record at any offset')

CONNECT_RESPONSE_DECODERS = (
        ('standard', _decode_standard),
        ('password-then-timeout', _decode_password_first),
        ('timeout-then-password', _decode_timeout_first),
        ('reply-envelope', _decode_enveloped),
        ('scan', _decode_scan)
    )

def parse_connect_response(data, maxpasswordlength = 4096):
    '''
    Decode a CONNECT reply payload (without the length prefix), trying every known layout
    in order. The standard server layout is tried first and wins when a reply fits it and
    one of the alternative layouts.

    :return: `(record, layout)` where record is a `SessionRecord` and layout is the name of
             the matching decoder

    :raises ZooKeeperHandshakeException: no layout matches; the exception carries the raw
                                         payload and the reason of every attempt
    '''
    data = bytes(data)
    attempts = []
    for name, decoder in CONNECT_RESPONSE_DECODERS:
        record, reason = decoder(data, maxpasswordlength)
        if record is not None:
            return record, name
        attempts.append((name, reason))
    raise ZooKeeperHandshakeException(data, attempts)


@defaultconfig
class ZooKeeper(Protocol):
    '''
    ZooKeeper protocol
    '''
    # default ZooKeeper port
    _default_defaultport = 2181
    _default_tcp_nodelay = True
    # Protocol version sent in CONNECT
    _default_protocolversion = 0
    # Longest session password accepted in a CONNECT reply
    _default_maxpasswordlength = 4096
    # Reject incoming frames larger than this
    _default_maxframesize = 0x400000
    # This is the default request limit of ZooKeeper (jute.maxbuffer)
    _default_maxrequestsize = 0xfffff
    _logger = logging.getLogger(__name__ + '.ZooKeeper')
    def __init__(self):
        Protocol.__init__(self)

    def _recvall(self, conn, size):
        buffer = bytearray()
        while len(buffer) < size:
            try:
                data = conn.recv(min(size - len(buffer), self.buffersize))
            except socket.timeout:
                raise ZooKeeperTimeoutException('Timeout when receiving from ZooKeeper (%d of %d bytes)'
                                                % (len(buffer), size))
            except OSError as exc:
                raise ZooKeeperConnectionException('Receive from ZooKeeper failed: %s' % (exc,))
            if not data:
                raise ZooKeeperShortReadException(size, len(buffer))
            buffer += data
        return bytes(buffer)

    def _sendall(self, conn, data):
        try:
            conn.sendall(data)
        except socket.timeout:
            raise ZooKeeperTimeoutException('Timeout when sending to ZooKeeper')
        except OSError as exc:
            raise ZooKeeperConnectionException('Send to ZooKeeper failed: %s' % (exc,))

    def read_frame(self, conn):
        '''
        Read one length-prefixed frame and return its body
        '''
        length = uint32.create(self._recvall(conn, 4))
        if length > self.maxframesize:
            raise ZooKeeperProtocolException('Frame of %d bytes exceeds the limit %d' % (length, self.maxframesize))
        if length == 0:
            return b''
        return self._recvall(conn, length)

    def write_frame(self, conn, opcode, xid, payload):
        '''
        Send `[length][xid][opcode][payload]` with a single write
        '''
        length = 8 + len(payload)
        if length >= self.maxrequestsize:
            raise ZooKeeperRequestTooLargeException('The request is %d bytes which is too large for ZooKeeper' % (length,))
        header = zk.RequestHeader(xid = to_signed32(xid), type = opcode)
        data = uint32.tobytes(length) + header._tobytes() + payload
        self._logger.debug('Send request xid=%d, type=%s, %d bytes', header.xid,
                           zk.zk_request_type.getName(opcode, opcode), length)
        self._sendall(conn, data)

    def write_connect_frame(self, conn, payload):
        '''
        CONNECT has no request header: only the length prefix and the payload
        '''
        self._sendall(conn, uint32.tobytes(len(payload)) + payload)

    def decode_response(self, frame):
        r = zk.ReplyHeader.parse(frame)
        if r is None:
            raise ZooKeeperProtocolException('Response too short: %d bytes' % (len(frame),))
        header, size = r
        return ZooKeeperResponse(header.xid, header.zxid, header.err, frame[size:])

    def handshake(self, conn, session, timeout_ms):
        '''
        Create a new session on a freshly opened connection.

        :param timeout_ms: requested session timeout in milliseconds

        :return: the `SessionRecord` from the server; `session` is updated and becomes
                 connected
        '''
        request = zk.connect(timeout_ms, protocol_version = self.protocolversion)
        self.write_connect_frame(conn, request._tobytes())
        payload = self.read_frame(conn)
        record, layout = parse_connect_response(payload, self.maxpasswordlength)
        if layout != 'standard':
            self._logger.debug('CONNECT response parsed with the %s layout', layout)
        session.establish(record)
        if session.state == session.EXPIRED:
            raise ZooKeeperSessionExpiredException('Session expired: server negotiated timeout %d'
                                                   % (record.timeout,))
        return record

    def request(self, conn, session, opcode, payload = b''):
        '''
        Send one request and wait for exactly one reply. The caller must not issue another
        request on the same connection before this returns.

        :return: `ZooKeeperResponse`; a reply with a different xid is returned as well
        '''
        if session.state != session.CONNECTED:
            raise ZooKeeperSessionUnavailable(session.state)
        xid = session.allocate_xid()
        self.write_frame(conn, opcode, xid, payload)
        response = self.decode_response(self.read_frame(conn))
        if response.zxid > 0:
            session.last_zxid = response.zxid
        if response.xid != to_signed32(xid):
            self._logger.warning('xid does not match: send %d, receive %d', to_signed32(xid), response.xid)
        return response

    def wait_watcher(self, conn, session):
        '''
        Block until the server pushes a watcher event; frames of other xids are discarded.

        :return: `WatchedEvent`
        '''
        if session.state != session.CONNECTED:
            raise ZooKeeperSessionUnavailable(session.state)
        while True:
            response = self.decode_response(self.read_frame(conn))
            if response.xid != WATCHER_EVENT_XID:
                self._logger.debug('Discard reply xid=%d when waiting for watcher event', response.xid)
                continue
            r = zk.WatcherEvent.parse(response.payload)
            if r is None:
                raise ZooKeeperTruncatedFrameException('Watcher event is truncated: %s' % (response.payload.hex(),))
            event, _ = r
            path = b'' if event.path is None else event.path
            if event.state != ZOO_SYNC_CONNECTED_STATE:
                self._logger.warning('Receive abnormal watch event: type=%s, state=%s, path=%r',
                                     zk.zk_watch_event.getName(event.type, event.type),
                                     zk.zk_client_state.getName(event.state, event.state),
                                     path)
                if event.state == ZOO_EXPIRED_STATE:
                    session.expire()
            try:
                path = path.decode('utf-8')
            except UnicodeDecodeError:
                raise ZooKeeperProtocolException('Watcher event path is not UTF-8: %r' % (path,))
            return WatchedEvent(event.type, event.state, path)
