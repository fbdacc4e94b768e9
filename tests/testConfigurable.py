'''
Created on 2026/10/18
'''
import unittest
from zkwire.config import manager, Configurable, defaultconfig, config
from zkwire.protocol.protocol import Protocol
from zkwire.protocol.zookeeper import ZooKeeper

@defaultconfig
class TestConfigurable(Configurable):
    _default_testproperty = '123'

@defaultconfig
class TestSubClass(TestConfigurable):
    _default_testproperty = '456'
    testproperty2 = 123

@config('testdirect')
class TestDirect(TestConfigurable):
    pass


class Test(unittest.TestCase):
    def tearDown(self):
        manager.clear()

    def testConfigurable(self):
        c1 = TestConfigurable()
        c2 = TestSubClass()
        c3 = TestDirect()
        self.assertEqual(getattr(c1, 'test', 'notconfigured'), 'notconfigured')
        self.assertEqual(getattr(c2, 'test', 'notconfigured'), 'notconfigured')
        manager['testconfigurable.default.test'] = 789
        self.assertEqual(getattr(c1, 'test', 'notconfigured'), 789)
        self.assertEqual(getattr(c2, 'test', 'notconfigured'), 789)
        manager['testconfigurable.testsubclass.test'] = 456
        self.assertEqual(getattr(c1, 'test', 'notconfigured'), 789)
        self.assertEqual(getattr(c2, 'test', 'notconfigured'), 456)
        self.assertEqual(getattr(c1, 'testproperty', 'notconfigured'), '123')
        self.assertEqual(getattr(c2, 'testproperty', 'notconfigured'), '456')
        manager['testconfigurable.default.testproperty'] = 111
        self.assertEqual(getattr(c1, 'testproperty', 'notconfigured'), 111)
        self.assertEqual(getattr(c2, 'testproperty', 'notconfigured'), '456')
        manager['testconfigurable.testsubclass.testproperty'] = 222
        self.assertEqual(getattr(c2, 'testproperty', 'notconfigured'), 222)
        manager['testconfigurable.testsubclass.testproperty2'] = 333
        self.assertEqual(getattr(c2, 'testproperty2', 'notconfigured'), 123)
        c1.testproperty = 777
        self.assertEqual(c1.testproperty, 777)
        self.assertEqual(getattr(c3, 'test', 'notconfigured'), 789)
        manager['testconfigurable.testdirect.test'] = 888
        self.assertEqual(getattr(c3, 'test', 'notconfigured'), 888)
        self.assertEqual(manager.testconfigurable.testsubclass.test, 456)
        self.assertEqual(manager.testconfigurable['testsubclass.test'], 456)
        self.assertEqual(set(manager.testconfigurable), set(['default', 'testsubclass', 'testdirect']))
        self.assertRaises(AttributeError, getattr, c1, '_private')

    def testProtocolConfig(self):
        p = ZooKeeper()
        self.assertEqual(ZooKeeper.configkey, 'protocol.zookeeper')
        self.assertEqual(Protocol.configkey, 'protocol.default')
        self.assertEqual(p.defaultport, 2181)
        self.assertEqual(p.buffersize, 65536)
        self.assertTrue(p.tcp_nodelay)
        manager['protocol.default.buffersize'] = 4096
        self.assertEqual(p.buffersize, 4096)
        manager['protocol.zookeeper.maxframesize'] = 1024
        self.assertEqual(p.maxframesize, 1024)

    def testConfigFile(self):
        manager['testa.testb.test1'] = 123
        manager['testa.testb.test2'] = "abc"
        manager['testa.testb.test3.test4'] = (123,"abc")
        manager['testa.testb.test3.test5'] = ['abc', u'def', (123,"abc")]
        manager['testa.testb.test3.test6'] = {'abc':123,b'def':u'ghi','jkl':[(123.12,345),"abc"]}
        save = manager.savetostr()
        manager.clear()
        manager.loadfromstr(save)
        self.assertEqual(list(manager.config_items(True)), [('testa.testb.test1', 123),
                                                            ('testa.testb.test2', "abc"),
                                                            ('testa.testb.test3.test4', (123,"abc")),
                                                            ('testa.testb.test3.test5', ['abc', u'def', (123,"abc")]),
                                                            ('testa.testb.test3.test6', {'abc':123,b'def':u'ghi','jkl':[(123.12,345),"abc"]})])
        self.assertEqual(manager.savetostr(), save)

    def testConfigLines(self):
        manager.loadfromstr('# ZooKeeper client\n'
                            'zookeeperclient.connectstring = "zk1:2181,zk2:2181"\n'
                            'zookeeperclient.watchtimeout = [1,\n'
                            '    2]\n'
                            '\n'
                            'protocol.zookeeper.tcp_nodelay=False\n')
        self.assertEqual(manager['zookeeperclient.connectstring'], "zk1:2181,zk2:2181")
        self.assertEqual(manager['zookeeperclient.watchtimeout'], [1, 2])
        self.assertEqual(manager.get('protocol.zookeeper.tcp_nodelay'), False)
        self.assertIn('protocol.zookeeper.tcp_nodelay', manager)
        self.assertNotIn('protocol.zookeeper.other', manager)
        self.assertRaises(ValueError, manager.loadfromstr, 'a.b = not a literal\n')
        self.assertRaises(ValueError, manager.loadfromstr, '  a = 1\n')
        self.assertRaises(ValueError, manager.loadfromstr, '1a = 1\n')

if __name__ == "__main__":
    #import sys;sys.argv = ['', 'Test.testName']
    unittest.main()
