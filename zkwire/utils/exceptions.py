'''
Created on 2026/10/18

Exceptions raised by the ZooKeeper codec, protocol and client
'''
from namedstruct.namedstruct import BadLenError


class ZooKeeperException(Exception):
    pass


class ZooKeeperConnectionException(ZooKeeperException, IOError):
    '''
    Connect, send or receive failed on the underlying connection
    '''
    pass


class ZooKeeperTimeoutException(ZooKeeperException):
    '''
    A blocking call did not finish in the configured timeout. The connection is
    left in an indeterminate state and should be closed.
    '''
    pass


class ZooKeeperProtocolException(ZooKeeperException):
    pass


class ZooKeeperTruncatedFrameException(ZooKeeperProtocolException, BadLenError):
    '''
    A length prefix declares more bytes than the buffer holds
    '''
    pass


class ZooKeeperShortReadException(ZooKeeperProtocolException):
    '''
    The peer closed the connection in the middle of a frame
    '''
    def __init__(self, expected, received):
        ZooKeeperProtocolException.__init__(self, 'Connection closed after %d of %d bytes'
                                            % (received, expected))
        self.expected = expected
        self.received = received


class ZooKeeperHandshakeException(ZooKeeperProtocolException):
    '''
    CONNECT response cannot be parsed with any known layout
    '''
    def __init__(self, payload, attempts):
        ZooKeeperProtocolException.__init__(self, 'Cannot parse CONNECT response %s: %s'
                                            % (payload.hex(),
                                               '; '.join('%s: %s' % a for a in attempts)))
        self.payload = payload
        self.attempts = attempts


class ZooKeeperRequestTooLargeException(ZooKeeperProtocolException):
    '''
    Request is too large, which may break every thing, so we reject it
    '''
    pass


class ZooKeeperServerException(ZooKeeperException):
    '''
    Server replied with a non-zero result code
    '''
    _codes = {}
    def __init__(self, code, path = None, message = None):
        if message is None:
            message = 'ZooKeeper error %d' % (code,)
            if path is not None:
                message += ' on %r' % (path,)
        ZooKeeperException.__init__(self, message)
        self.code = code
        self.path = path
    @classmethod
    def register(cls, code):
        def decorator(subcls):
            cls._codes[code] = subcls
            return subcls
        return decorator
    @classmethod
    def fromcode(cls, code, path = None):
        '''
        Create the most specific exception for a result code
        '''
        return cls._codes.get(code, ZooKeeperServerException)(code, path)


@ZooKeeperServerException.register(-101)
class ZooKeeperNoNodeException(ZooKeeperServerException):
    def __init__(self, code = -101, path = None):
        ZooKeeperServerException.__init__(self, code, path, 'Node does not exist: %r' % (path,))


@ZooKeeperServerException.register(-110)
class ZooKeeperNodeExistsException(ZooKeeperServerException):
    def __init__(self, code = -110, path = None):
        ZooKeeperServerException.__init__(self, code, path, 'Node already exists: %r' % (path,))


@ZooKeeperServerException.register(-103)
class ZooKeeperBadVersionException(ZooKeeperServerException):
    def __init__(self, code = -103, path = None):
        ZooKeeperServerException.__init__(self, code, path, 'Version does not match: %r' % (path,))


@ZooKeeperServerException.register(-115)
class ZooKeeperAuthFailedException(ZooKeeperServerException):
    def __init__(self, code = -115, path = None):
        ZooKeeperServerException.__init__(self, code, path, 'Authentication failed, err=%d' % (code,))


class ZooKeeperSessionUnavailable(ZooKeeperException):
    def __init__(self, state):
        ZooKeeperException.__init__(self, "ZooKeeper state is '%s'" % (state,))
        self.state = state


class ZooKeeperSessionExpiredException(ZooKeeperException):
    '''
    Handshake or a watcher event reports the session is expired
    '''
    pass


class ZooKeeperDataCodecUnavailable(ZooKeeperException):
    '''
    Structured node data is used but no data codec is configured
    '''
    pass
