from .config import ConfigTree, Manager, manager, Configurable, config, defaultconfig
