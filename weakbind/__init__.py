'''weakbind: memoized partial application that doesn't leak its keys'''

__all__ = ['bind', 'InvalidArgumentError', 'memoize_weak', 'WeakMemoizer',
           'NULL']

from loguru import logger

from weakbind.binder import bind, InvalidArgumentError
from weakbind.memoizer import memoize_weak, WeakMemoizer
from weakbind.singleton import NULL

# libraries stay quiet unless the application opts in with
# logger.enable("weakbind")
logger.disable(__name__)
