''' NULL for when None isn't enough (aka always...)

None is a perfectly good receiver for a bound function and a perfectly
good return value for a memoized one, so an empty cache slot or a
missing argument is marked with NULL instead.

Note the __bool__ "method" speed hack. A builtin bound method stored in
the class dict isn't a descriptor, so Python calls it without `self`.
'''

__all__ = ['NullType', 'NULL']

from itertools import repeat


class SingletonType(type):

    def __call__(cls):
        return cls.__self__

    def __repr__(cls):
        return f"<class '{cls.__module__}.{cls.__name__}'>"

    @classmethod
    def _make(mcls, name, is_true=False):
        ns = dict(__slots__=(),
                  __bool__=repeat(is_true).__next__,
                  __module__=__name__,
                  )
        return type.__new__(mcls, name, (SingletonBase,), ns)


class SingletonBase:

    __slots__ = ()

    def __repr__(self):
        return type(self).__name__

    def __init_subclass__(cls):
        if cls.__base__ is not SingletonBase:
            m = f'type {cls.__name__!r} is not an acceptable base type'
            raise TypeError(m)
        cls.__self__ = object.__new__(cls)

    def __new__(cls):
        return cls.__self__

    def __reduce__(self):
        return type(self).__name__


NullType = SingletonType._make('NULL')
NULL = NullType()
