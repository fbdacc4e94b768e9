'''
Created on 2026/10/18

Codecs for structured node data. The protocol never depends on them: they are only used
when a caller stores something other than bytes in a node.
'''
from zkwire.config.config import config, Configurable
from zkwire.utils.exceptions import ZooKeeperDataCodecUnavailable
from urllib.parse import unquote_to_bytes, quote_from_bytes
import json

_BYTES_KEY = '<zkwirejsonencode/urlencoded-bytes>'

def encode_default(obj):
    if isinstance(obj, (bytes, bytearray)):
        return {_BYTES_KEY: quote_from_bytes(bytes(obj))}
    elif hasattr(obj, 'jsonencode'):
        return obj.jsonencode()
    else:
        raise TypeError(repr(obj) + " is not JSON serializable")


def decode_object(obj):
    if len(obj) == 1 and _BYTES_KEY in obj:
        return unquote_to_bytes(obj[_BYTES_KEY])
    else:
        return obj


class NullDataCodec(object):
    '''
    Default data codec: text is stored as UTF-8, anything else is rejected
    '''
    def encode(self, obj):
        if isinstance(obj, str):
            return obj.encode('utf-8')
        raise ZooKeeperDataCodecUnavailable('Cannot store %s in a node: no data codec is configured'
                                            % (type(obj).__name__,))
    def decode(self, data):
        raise ZooKeeperDataCodecUnavailable('Cannot decode node data: no data codec is configured')


@config('jsondatacodec')
class JsonDataCodec(Configurable):
    '''
    Store node data as JSON. bytes values inside the object are kept with a special
    mapping and restored on decode.
    '''
    # Encoding of the JSON text
    _default_encoding = 'utf-8'
    # Sort keys of dictionaries, makes the stored data stable
    _default_sortkeys = True
    def __init__(self):
        Configurable.__init__(self)
    def encode(self, obj):
        return json.dumps(obj, default = encode_default, sort_keys = self.sortkeys,
                          separators = (',', ':')).encode(self.encoding)
    def decode(self, data):
        if not data:
            return None
        return json.loads(data.decode(self.encoding), object_hook = decode_object)
