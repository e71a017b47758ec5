'''Weakly keyed memoization over argument lists of any length

Every positional argument is one level of a trie, and how a level holds
its key depends on what the key is:

* str, bytes, int, float, complex, bool and None (exactly those types,
  not subclasses) are matched by value, with their type as part of the
  key so that True, 1 and 1.0 stay three different keys;
* every other object is matched by identity and never hashed, held
  through a weakref when it allows one, so the cache never keeps it
  alive;
* objects without weakref support (tuple, list, dict, slotted
  instances...) are held strongly until their node is pruned;
* bound methods are made fresh on every attribute lookup, so they are
  split into __func__ and __self__ in a sub-trie of their own.

There are no ephemerons in Python: a node that strongly held a result
closing over its own keys would keep those keys alive forever. Results
are therefore held weakly whenever they allow it, and strongly only when
they don't (None, ints, tuples...).

Nodes are pruned bottom-up once a key or a result is reclaimed. The
weakref callbacks only queue the work, which is done under the lock by
whoever gets there first.
'''

__all__ = ['memoize_weak', 'WeakMemoizer', 'TrieNode']

from collections import deque
from functools import partial, update_wrapper
from threading import Lock
from types import MethodType
from weakref import ref as weakref

from loguru import logger

from weakbind.singleton import NULL

# exact types matched by value, everything else is matched by identity
PRIMITIVES = frozenset({str, bytes, int, float, complex, bool, type(None)})

class TrieNode:

    __slots__ = ('parent', 'edge', 'result', 'resref',
                 'weak', 'values', 'pinned', 'methods', '__weakref__')

    def __init__(self, parent=None, edge=None):
        self.parent  = parent   # weakref to the parent, None for a root
        self.edge    = edge     # (table, token) the parent files us under
        self.result  = NULL
        self.resref  = None
        self.weak    = {}       # id(key) -> (weakref(key), node)
        self.values  = {}       # (type(key), key) -> node
        self.pinned  = {}       # id(key) -> (key, node)
        self.methods = None

    def __repr__(self):
        n = len(self.weak) + len(self.values) + len(self.pinned)
        return f'<{type(self).__name__} children={n} result={self.recall()!r}>'

    def recall(self):
        if self.result is not NULL:
            return self.result
        if self.resref is not None:
            result = self.resref()
            if result is not None:
                return result
        return NULL

    def store(self, result, callback):
        try:
            self.resref = weakref(result, callback)
        except TypeError:
            self.result = result

    @property
    def vacant(self):
        return (self.recall() is NULL
                and not self.weak
                and not self.values
                and not self.pinned
                and self.methods is None)

    def detach(self, child):
        table, token = child.edge
        if table == 'methods':
            if self.methods is child:
                self.methods = None
            return
        entries = getattr(self, table)
        entry = entries.get(token)
        if entry is not None and (entry if table == 'values' else entry[1]) is child:
            del entries[token]

    def live(self):
        'number of memoized results at and below this node'
        n = self.recall() is not NULL
        for _, child in self.weak.values():
            n += child.live()
        for child in self.values.values():
            n += child.live()
        for _, child in self.pinned.values():
            n += child.live()
        if self.methods is not None:
            n += self.methods.live()
        return n


class WeakMemoizer:

    '''WeakMemoizer(func) -> memoized callable

    Calls with equal positional arguments (see the module docstring for
    what "equal" means per key) return the identical result for as long
    as the result or, for results that can't be weakly referenced, its
    keys are alive.

    `func` runs outside the lock so memoized functions may recurse. If
    two threads race on the same key, the first stored result wins.
    '''

    def __init__(self, func, /):
        if not callable(func):
            raise TypeError('memoize_weak requires a callable')
        update_wrapper(self, func)
        self.__func__ = func
        self._root    = TrieNode()
        self._lock    = Lock()
        self._pending = deque()

    def __repr__(self):
        return f'<{type(self).__name__} {self.__func__!r} entries={len(self)}>'

    def __get__(self, obj, cls=None):
        if obj is None:
            return self
        return partial(self, obj)

    def __len__(self):
        with self._lock:
            self._reap()
            return self._root.live()

    def __call__(self, /, *args):
        with self._lock:
            self._reap()
            node = self._walk(args, create=False)
            if node is not None:
                result = node.recall()
                if result is not NULL:
                    return result

        result = self.__func__(*args)

        with self._lock:
            self._reap()
            node = self._walk(args, create=True)
            cached = node.recall()
            if cached is not NULL:
                return cached
            node.store(result, self._reaper(node, None))
        logger.debug('memoized {} over {} key(s)',
                     getattr(self, '__qualname__', self.__func__), len(args))
        return result

    def _walk(self, args, create):
        node = self._root
        for arg in args:
            node = self._child(node, arg, create)
            if node is None:
                return None
        return node

    def _child(self, node, key, create):
        if type(key) is MethodType:
            root = node.methods
            if root is None:
                if not create:
                    return None
                root = node.methods = TrieNode(weakref(node), ('methods', None))
            child = self._child(root, key.__func__, create)
            return child and self._child(child, key.__self__, create)

        if type(key) in PRIMITIVES:
            token = type(key), key
            child = node.values.get(token)
            if child is None and create:
                child = node.values[token] = TrieNode(weakref(node), ('values', token))
            return child

        ident = id(key)
        entry = node.weak.get(ident)
        if entry is not None and entry[0]() is key:
            return entry[1]
        entry = node.pinned.get(ident)
        if entry is not None:
            return entry[1]
        if not create:
            return None

        try:
            ref = weakref(key, self._reaper(node, ident))
        except TypeError:
            # no weakref support (tuple, list, slotted objects...)
            child = TrieNode(weakref(node), ('pinned', ident))
            node.pinned[ident] = key, child
            return child
        child = TrieNode(weakref(node), ('weak', ident))
        node.weak[ident] = ref, child
        return child

    def _reaper(self, node, ident):
        return partial(self._reclaimed, weakref(node), ident)

    def _reclaimed(self, node_ref, ident, ref):
        self._pending.append((ref, node_ref, ident))
        if self._lock.acquire(False):
            try:
                self._reap()
            finally:
                self._lock.release()

    def _reap(self):
        pending = self._pending
        while pending:
            ref, node_ref, ident = pending.popleft()
            node = node_ref()
            if node is None:
                continue
            if ident is None:
                if node.resref is not ref:
                    continue
                node.resref = None
                logger.debug('reclaimed a result of {}', self.__func__)
            else:
                entry = node.weak.get(ident)
                if entry is None or entry[0] is not ref:
                    continue
                del node.weak[ident]
                logger.debug('reclaimed a key of {}', self.__func__)
            self._prune(node)

    def _prune(self, node):
        while node.parent is not None and node.vacant:
            parent = node.parent()
            if parent is None:
                return
            parent.detach(node)
            node = parent


def memoize_weak(func, /):
    '''Weakly keyed memoizing decorator

        >>> @memoize_weak
            def pair(a, b):
                return [a, b]

        >>> class Key:
                pass

        >>> key = Key()
        >>> pair(key, 'x') is pair(key, 'x')
        True

    Only positional arguments take part in the key.
    '''
    return WeakMemoizer(func)
