'''
Synchronous ZooKeeper client over the binary wire protocol
'''
__version__ = '0.1.0'
