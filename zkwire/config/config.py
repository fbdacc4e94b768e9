'''
Created on 2026/10/18

Hierarchical configuration shared by the client and protocol classes
'''
import re
import ast

class ConfigTree(object):
    """
    A configuration node. Dotted keys address values in child nodes::

        node['zookeeperclient.timeout'] = 5
        node.zookeeperclient.timeout  # 5
    """
    def __init__(self):
        pass
    def keys(self):
        return self.__dict__.keys()
    def items(self):
        return self.__dict__.items()
    def __len__(self):
        return len(self.__dict__)
    def __iter__(self):
        return iter(self.__dict__)
    def config_items(self, sortkey = False):
        """
        Return `(dotted_key, value)` for every value in this node and its children
        """
        items = sorted(self.items()) if sortkey else self.items()
        for k,v in items:
            if isinstance(v, ConfigTree):
                for k2,v2 in v.config_items(sortkey):
                    yield (k + '.' + k2, v2)
            else:
                yield (k,v)
    def _getsubitem(self, key, create = False):
        keylist = [k for k in key.split('.') if k != '']
        if not keylist:
            raise KeyError('Config key is empty')
        current = self
        for k in keylist[:-1]:
            v = getattr(current, k, None)
            if not isinstance(v, ConfigTree):
                if not create:
                    return (None, None)
                v = ConfigTree()
                setattr(current, k, v)
            current = v
        return (current, keylist[-1])
    def __setitem__(self, key, value):
        (t, k) = self._getsubitem(key, True)
        setattr(t, k, value)
    def __delitem__(self, key):
        (t, k) = self._getsubitem(key, False)
        if t is None:
            raise KeyError(key)
        delattr(t, k)
    def __getitem__(self, key):
        (t, k) = self._getsubitem(key, False)
        if t is None:
            raise KeyError(key)
        return t.__dict__[k]
    def get(self, key, defaultvalue = None):
        (t, k) = self._getsubitem(key, False)
        if t is None:
            return defaultvalue
        return t.__dict__.get(k, defaultvalue)
    def __contains__(self, key):
        (t, k) = self._getsubitem(key, False)
        return t is not None and k in t.__dict__
    def clear(self):
        self.__dict__.clear()
    def todict(self):
        """
        Convert this node to nested dictionaries
        """
        return dict((k, v.todict() if isinstance(v, ConfigTree) else v)
                    for k,v in self.items())

class Manager(ConfigTree):
    '''
    Configuration manager. Use the global variable `manager` to access the configuration system.
    '''
    _line_format = re.compile(r'((?:[a-zA-Z][a-zA-Z0-9_]*\.)*[a-zA-Z][a-zA-Z0-9_]*)\s*=\s*')
    def __init__(self):
        ConfigTree.__init__(self)
    def _store(self, key, lines, line_no):
        try:
            value = ast.literal_eval(''.join(lines))
        except (ValueError, SyntaxError) as exc:
            raise ValueError('Error format in line %d(%s: %s):\n%s' % (line_no, type(exc).__name__, exc, ''.join(lines)))
        self[key] = value
    def loadfromfile(self, filelike):
        """
        Read `key=value` lines from a file-like object or a sequence of strings. Values are
        Python literals; a line starting with whitespace continues the previous value;
        lines starting with # are ignored. Existing values are kept unless overwritten.
        """
        line_key = None
        key_line_no = None
        line_buffer = []
        for line_no, l in enumerate(filelike, 1):
            ls = l.strip()
            if not ls or ls.startswith('#'):
                continue
            if l[0].isspace():
                if not line_key:
                    raise ValueError('Error format in line %d: first line cannot start with space\n%s' % (line_no, l))
                line_buffer.append(l)
                continue
            if line_key:
                self._store(line_key, line_buffer, key_line_no)
            m = self._line_format.match(l)
            if not m:
                raise ValueError('Error format in line %d:\n%s' % (line_no, l))
            line_key = m.group(1)
            key_line_no = line_no
            line_buffer = [l[m.end():]]
        if line_key:
            self._store(line_key, line_buffer, key_line_no)
    def loadfrom(self, path):
        with open(path, 'r') as f:
            self.loadfromfile(f)
    def loadfromstr(self, string):
        self.loadfromfile(string.splitlines(keepends=True))
    def savetostr(self, sortkey = True):
        return ''.join(k + '=' + repr(v) + '\n' for k,v in self.config_items(sortkey))

# Global configuration manager
manager = Manager()

class Configurable(object):
    """
    Base class for a configurable object. An attribute which is not set on the instance or
    the class is looked up in this order:

    1. `manager[<configkey>.<attrname>]`

    2. `_default_<attrname>` of the class

    3. the same two steps for each configurable parent class

    Attributes beginning with '_' are not mapped.
    """
    def __init__(self):
        pass
    def __getattr__(self, key):
        if key.startswith('_'):
            raise AttributeError("type object '%s' has no attribute '%s'" % (type(self).__name__, key))
        cls = type(self)
        while cls is not None:
            configkey = getattr(cls, 'configkey', None)
            if configkey is not None:
                try:
                    return manager[configkey + '.' + key]
                except KeyError:
                    pass
            try:
                return cls.__dict__['_default_' + key]
            except KeyError:
                pass
            cls = cls.getConfigurableParent()
        raise AttributeError("type object '%s' has no attribute '%s'" % (type(self).__name__, key))
    @classmethod
    def getConfigurableParent(cls):
        for p in cls.__bases__:
            if issubclass(p, Configurable):
                return p
        return None

def config(key):
    """
    Decorator to map this class directly to a configuration node
    """
    def decorator(cls):
        parent = cls.getConfigurableParent()
        parentbase = getattr(parent, 'configbase', None) if parent is not None else None
        if parentbase is None:
            cls.configkey = key
        else:
            cls.configkey = parentbase + '.' + key
        return cls
    return decorator

def defaultconfig(cls):
    """
    Map the class to `<parentbase>.<lowercase-name>`, or to `<lowercase-name>.default` with
    itself as the base when no parent defines `configbase`
    """
    parentbase = None
    for p in cls.__bases__:
        if issubclass(p, Configurable):
            parentbase = getattr(p, 'configbase', None)
            break
    if parentbase is None:
        base = cls.__name__.lower()
        cls.configbase = base
        cls.configkey = base + '.default'
    else:
        cls.configkey = parentbase + '.' + cls.__name__.lower()
    return cls
