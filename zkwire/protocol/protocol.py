'''
Created on 2026/10/18

Protocol base class
'''
from zkwire.config import Configurable, defaultconfig
from logging import getLogger
from socket import create_connection, IPPROTO_TCP, TCP_NODELAY

@defaultconfig
class Protocol(Configurable):
    '''
    Protocol base class. Holds the socket level settings and creates the default
    byte-stream connection.
    '''
    # Maximum bytes requested from the connection in one receive call
    _default_buffersize = 65536
    # Timeout for establishing the TCP connection; None to use the I/O timeout of the caller
    _default_connect_timeout = None
    # Enable TCP_NODELAY option for this protocol
    _default_tcp_nodelay = False
    _logger = getLogger(__name__ + '.Protocol')
    def __init__(self):
        '''
        Constructor
        '''
        Configurable.__init__(self)
    def create_connection(self, address, timeout = None):
        '''
        Default connector: open a TCP connection to `address` = (host, port).

        The returned object is used through `sendall`, `recv`, `settimeout` and `close`,
        any object providing these methods can replace it.
        '''
        connect_timeout = self.connect_timeout
        if connect_timeout is None:
            connect_timeout = timeout
        conn = create_connection(address, connect_timeout)
        if self.tcp_nodelay:
            conn.setsockopt(IPPROTO_TCP, TCP_NODELAY, 1)
        conn.settimeout(timeout)
        self._logger.debug('Connected to %s:%d', address[0], address[1])
        return conn
