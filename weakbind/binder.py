'''Memoized receiver binding

    >>> class Greeter:
            name = 'world'

    >>> def greet(self, greeting, punct=''):
            return f'{greeting}, {self.name}{punct}'

    >>> g = Greeter()
    >>> hello = bind(greet, g, 'hello')
    >>> hello('!')
    'hello, world!'
    >>> hello is bind(greet, g, 'hello')
    True

How `context` is installed as the receiver is up to Python, not us:

* None installs nothing, `fn` is called with just the arguments;
* already bound methods (`obj.method`, `[].append`, `(1).__add__`)
  keep their receiver and are used as they are;
* anything with a __get__ (functions, staticmethods...) is bound
  through it, and primitives are passed through untouched;
* other callables (classes, builtins, instances with a __call__) get
  `context` as their first argument.
'''

__all__ = ['bind', 'InvalidArgumentError']

from functools import partial
from types import BuiltinMethodType, MethodType, MethodWrapperType, ModuleType

from loguru import logger

from weakbind.memoizer import memoize_weak
from weakbind.singleton import NULL


class InvalidArgumentError(TypeError):
    pass


def is_bound(fn):
    if isinstance(fn, (MethodType, MethodWrapperType)):
        return True
    if isinstance(fn, BuiltinMethodType):
        owner = fn.__self__
        return owner is not None and not isinstance(owner, ModuleType)
    return False


def receive(fn, context):
    if context is None or is_bound(fn):
        return fn
    get = getattr(type(fn), '__get__', None)
    if get is None:
        return MethodType(fn, context)
    return get(fn, context, type(context))


@memoize_weak
def _bound(fn, context, /, *args):
    logger.debug('binding {!r} to a {}', fn, type(context).__name__)
    return partial(receive(fn, context), *args)


def bind(fn=NULL, context=None, /, *args):
    '''bind(fn, context=None, *args) -> bound callable

    Same as `partial(fn.__get__(context), *args)`, except that equal
    arguments give back the identical callable for as long as it's alive.
    Objects are compared by identity and the rest by value, and the cache
    holds none of them alive.
    '''
    if fn is NULL:
        raise InvalidArgumentError('bind() missing required argument: fn')
    if not callable(fn):
        m = f'bind() requires a callable, not {type(fn).__name__!r}'
        raise InvalidArgumentError(m)
    return _bound(fn, context, *args)

bind.__memo__ = _bound
