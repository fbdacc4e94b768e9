import logging

class ContextAdapter(logging.LoggerAdapter):
    '''
    Prefix log messages with `extra['context']`, which may be changed after creation
    '''
    def process(self, msg, kwargs):
        context = self.extra.get('context')
        if context is not None:
            m, ka = logging.LoggerAdapter.process(self, msg, kwargs)
            return ('(%s) %s' % (context, m), ka)
        else:
            return logging.LoggerAdapter.process(self, msg, kwargs)
