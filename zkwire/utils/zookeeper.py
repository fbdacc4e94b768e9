'''
Created on 2026/10/18

ZooKeeper (Jute) wire types. All integers are big-endian; variable length fields are
prefixed with a 32-bit length.
'''

from namedstruct import *
from zkwire.utils.exceptions import ZooKeeperTruncatedFrameException

def _tobytes(s, encoding = 'utf-8'):
    if s is None:
        return None
    elif isinstance(s, bytes):
        return s
    else:
        return s.encode(encoding)

def to_unsigned32(value):
    '''
    Two's complement bit pattern of a signed 32-bit value
    '''
    return value & 0xffffffff

def to_signed32(value):
    '''
    Signed value of an unsigned 32-bit bit pattern
    '''
    value &= 0xffffffff
    if value >= 0x80000000:
        return value - 0x100000000
    else:
        return value

# Length prefix used by the server for a null buffer
_NULL_LENGTH = 0xffffffff

class UStringParser(object):
    '''
    Jute ustring type: unsigned 32-bit length followed by exactly that many bytes.
    '''
    def __init__(self):
        pass
    def parse(self, buffer, inlineparent = None):
        if len(buffer) < 4:
            return None
        length = uint32.create(buffer[:4])
        if length == _NULL_LENGTH:
            return (None, 4)
        if len(buffer) < 4 + length:
            return None
        else:
            return (bytes(buffer[4:4+length]), 4 + length)
    def new(self, inlineparent = None):
        return b''
    def create(self, data, inlineparent = None):
        r = self.parse(data)
        if r is None:
            if len(data) < 4:
                raise ZooKeeperTruncatedFrameException('Need 4 bytes for length prefix, got %d' % (len(data),))
            raise ZooKeeperTruncatedFrameException('Length prefix declares %d bytes, only %d available'
                                                   % (uint32.create(data[:4]), len(data) - 4))
        return r[0]
    def sizeof(self, prim):
        prim = _tobytes(prim)
        if prim is None:
            return 4
        else:
            return len(prim) + 4
    def paddingsize(self, prim):
        return self.sizeof(prim)
    def tobytes(self, prim, skipprepack = False):
        prim = _tobytes(prim)
        if prim is None:
            return uint32.tobytes(_NULL_LENGTH)
        else:
            return uint32.tobytes(len(prim)) + prim

class ustringtype(typedef):
    '''
    A uint32 followed by variable length bytes
    '''
    _parser = UStringParser()
    def __init__(self, displayname = 'ustring'):
        typedef.__init__(self)
        self._displayname = displayname
    def parser(self):
        return self._parser
    def __repr__(self, *args, **kwargs):
        return self._displayname

ustring = ustringtype()
z_buffer = ustringtype('buffer')


class VectorParser(object):
    '''
    Jute vector type: 32-bit count followed by the elements.
    '''
    def __init__(self, innerparser):
        self._innerparser = innerparser
    def parse(self, buffer, inlineparent = None):
        if len(buffer) < 4:
            return None
        length = int32.create(buffer[:4])
        if length < 0:
            return (None, 4)
        start = 4
        result = []
        for _ in range(0, length):
            r = self._innerparser.parse(buffer[start:], None)
            if r is None:
                return None
            (inner, size) = r
            result.append(inner)
            start += size
        return (result, start)
    def new(self, inlineparent = None):
        return []
    def create(self, data, inlineparent = None):
        r = self.parse(data)
        if r is None:
            raise ZooKeeperTruncatedFrameException('Vector elements exceed the buffer')
        return r[0]
    def sizeof(self, prim):
        if prim is None:
            return 4
        else:
            return sum(self._innerparser.paddingsize(r) for r in prim) + 4
    def paddingsize(self, prim):
        return self.sizeof(prim)
    def tobytes(self, prim, skipprepack = False):
        if prim is None:
            return int32.tobytes(-1)
        else:
            return int32.tobytes(len(prim)) + b''.join(self._innerparser.tobytes(r) for r in prim)

class vector(typedef):
    '''
    Jute vector
    '''
    def __init__(self, innertype):
        typedef.__init__(self)
        self._innertype = innertype
    def _compile(self):
        return VectorParser(self._innertype.parser())
    def __repr__(self, *args, **kwargs):
        return 'vector<' + repr(self._innertype) + '>'

# /* predefined xid's values recognized as special by the server */
zk_xid = enum('zk_xid', globals(), int32,
    WATCHER_EVENT_XID = -1,
    PING_XID = -2,
    AUTH_XID = -4,
    SET_WATCHES_XID = -8)

# /* zookeeper event type constants */
zk_watch_event = enum('zk_watch_event', globals(), int32,
    CREATED_EVENT_DEF = 1,
    DELETED_EVENT_DEF = 2,
    CHANGED_EVENT_DEF = 3,
    CHILD_EVENT_DEF = 4,
    SESSION_EVENT_DEF = -1,
    NOTWATCHING_EVENT_DEF = -2)

zk_request_type = enum('zk_request_type', globals(), int32,
    ZOO_CREATE_OP = 1,
    ZOO_DELETE_OP = 2,
    ZOO_EXISTS_OP = 3,
    ZOO_GETDATA_OP = 4,
    ZOO_SETDATA_OP = 5,
    ZOO_GETCHILDREN_OP = 8,
    ZOO_SETAUTH_OP = 100,
    ZOO_CLOSE_OP = -1,
    ZOO_PING_OP = -101
)

zk_client_state = enum('zk_client_state', globals(), int32,
    ZOO_DISCONNECTED_STATE = 0,
    ZOO_NOSYNC_CONNECTED_STATE = 1,
    ZOO_SYNC_CONNECTED_STATE = 3,
    ZOO_AUTH_FAILED_STATE = 4,
    ZOO_CONNECTED_READONLY_STATE = 5,
    ZOO_SASL_AUTHENTICATED_STATE = 6,
    ZOO_EXPIRED_STATE = -112
)

zk_err = enum('zk_err', globals(), int32,
    ZOO_ERR_OK = 0,
    ZOO_ERR_SYSTEMERROR = -1,
    ZOO_ERR_RUNTIMEINCONSISTENCY = -2,
    ZOO_ERR_DATAINCONSISTENCY = -3,
    ZOO_ERR_CONNECTIONLOSS = -4,
    ZOO_ERR_MARSHALLINGERROR = -5,
    ZOO_ERR_UNIMPLEMENTED = -6,
    ZOO_ERR_OPERATIONTIMEOUT = -7,
    ZOO_ERR_BADARGUMENTS = -8,
    ZOO_ERR_APIERROR = -100,
    ZOO_ERR_NONODE = -101,
    ZOO_ERR_NOAUTH = -102,
    ZOO_ERR_BADVERSION = -103,
    ZOO_ERR_NOCHILDRENFOREPHEMERALS = -108,
    ZOO_ERR_NODEEXISTS = -110,
    ZOO_ERR_NOTEMPTY = -111,
    ZOO_ERR_SESSIONEXPIRED = -112,
    ZOO_ERR_INVALIDCALLBACK = -113,
    ZOO_ERR_INVALIDACL = -114,
    ZOO_ERR_AUTHFAILED = -115
    )

zk_perm = enum('zk_perm', globals(), int32, True,
    ZOO_PERM_READ = 1 << 0,
    ZOO_PERM_WRITE = 1 << 1,
    ZOO_PERM_CREATE = 1 << 2,
    ZOO_PERM_DELETE = 1 << 3,
    ZOO_PERM_ADMIN = 1 << 4,
    ZOO_PERM_ALL = 0x1f
)

zk_create_flag = enum('zk_create_flag', globals(), int32, True,
                    ZOO_EPHEMERAL = 1 << 0,
                    ZOO_SEQUENCE = 1 << 1,
    )

Id = nstruct(
        (ustring, 'scheme'),
        (ustring, 'id'),
        name = 'Id',
        padding = 1
     )

ACL = nstruct(
        (zk_perm, 'perms'),
        (Id, 'id'),
        name = 'ACL',
        padding = 1
    )

# CONNECT is the only message without a request header
ConnectRequest = nstruct(
        (int32, 'protocolVersion'),
        (int64, 'lastZxidSeen'),
        (int32, 'timeOut'),
        (int64, 'sessionId'),
        (z_buffer, 'passwd'),
        name = 'ConnectRequest',
        padding = 1
    )

# The layout a standard server replies with; a trailing read-only flag is optional
ConnectResponse = nstruct(
        (int32, 'protocolVersion'),
        (int32, 'timeOut'),
        (int64, 'sessionId'),
        (z_buffer, 'passwd'),
        name = 'ConnectResponse',
        padding = 1
    )

# Alternative CONNECT reply layouts, tried when the standard one does not fit
ConnectResponsePasswordFirst = nstruct(
        (int64, 'sessionId'),
        (z_buffer, 'passwd'),
        (int32, 'timeOut'),
        name = 'ConnectResponsePasswordFirst',
        padding = 1
    )

ConnectResponseTimeoutFirst = nstruct(
        (int64, 'sessionId'),
        (int32, 'timeOut'),
        (z_buffer, 'passwd'),
        name = 'ConnectResponseTimeoutFirst',
        padding = 1
    )

# Every message except CONNECT begins with 32-bit length, xid and opcode
RequestHeader = nstruct(
        (int32, 'xid'),
        (zk_request_type, 'type'),
        name = 'RequestHeader',
        padding = 1
    )

ReplyHeader = nstruct(
        (int32, 'xid'),
        (int64, 'zxid'),
        (zk_err, 'err'),
        name = 'ReplyHeader',
        padding = 1
    )

AuthPacket = nstruct(
        (int32, 'auth_type'),             # This is not used, always 0
        (ustring, 'scheme'),
        (z_buffer, 'auth'),
        name = 'AuthPacket',
        padding = 1
    )

GetDataRequest = nstruct(
        (ustring, 'path'),
        (boolean, 'watch'),
        name = 'GetDataRequest',
        padding = 1
    )

ExistsRequest = nstruct(
        (ustring, 'path'),
        (boolean, 'watch'),
        name = 'ExistsRequest',
        padding = 1
    )

GetChildrenRequest = nstruct(
        (ustring, 'path'),
        (boolean, 'watch'),
        name = 'GetChildrenRequest',
        padding = 1
    )

SetDataRequest = nstruct(
        (ustring, 'path'),
        (z_buffer, 'data'),
        (int32, 'version'),
        name = 'SetDataRequest',
        padding = 1
    )

CreateRequest = nstruct(
        (ustring, 'path'),
        (z_buffer, 'data'),
        (vector(ACL), 'acl'),
        (zk_create_flag, 'flags'),
        name = 'CreateRequest',
        padding = 1
    )

DeleteRequest = nstruct(
        (ustring, 'path'),
        (int32, 'version'),
        name = 'DeleteRequest',
        padding = 1
    )

WatcherEvent = nstruct(
        (zk_watch_event, 'type'),  # event type
        (zk_client_state, 'state'), # state of the Keeper client runtime
        (ustring, 'path'),
        name = 'WatcherEvent',
        padding = 1
    )

# Helpers

def default_acl():
    return ACL(perms = ZOO_PERM_ALL, id = Id(scheme = 'world', id = 'anyone'))

OPEN_ACL_UNSAFE = [default_acl()]

def acl_tobytes(acls):
    '''
    Encode an ACL array: 32-bit count, then per entry the permission mask,
    the scheme and the id
    '''
    return vector(ACL).tobytes(acls)

def create(path, data, ephemeral = False, sequence = False, acl = None):
    if acl is None:
        acl = [default_acl()]
    return CreateRequest(path = path, data = data, acl = acl,
                         flags = (ZOO_EPHEMERAL if ephemeral else 0) | (ZOO_SEQUENCE if sequence else 0))

def delete(path, version = -1):
    return DeleteRequest(path = path, version = version)

def exists(path, watch = False):
    return ExistsRequest(path = path, watch = watch)

def getdata(path, watch = False):
    return GetDataRequest(path = path, watch = watch)

def setdata(path, data, version = -1):
    return SetDataRequest(path = path, data = data, version = version)

def getchildren(path, watch = False):
    return GetChildrenRequest(path = path, watch = watch)

def auth(scheme, credential):
    return AuthPacket(auth_type = 0, scheme = scheme, auth = credential)

def connect(timeout, session_id = 0, passwd = b'', last_zxid = 0, protocol_version = 0):
    return ConnectRequest(protocolVersion = protocol_version,
                          lastZxidSeen = last_zxid,
                          timeOut = timeout,
                          sessionId = session_id,
                          passwd = passwd)
