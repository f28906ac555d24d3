from functools import wraps

from .exceptions import InstantiationError


class dualmethod:
    """
    Method callable on an instance or on the class.

    Called on the class, a fresh instance is built with no arguments first, so
    the owning type must be default-constructible:

        User.table_name()     # User().table_name()
        user.table_name()
    """
    def __init__(self, func):
        self.func = func
        self.name = func.__name__
        wraps(func)(self)

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        target_type = objtype if obj is None else type(obj)

        @wraps(self.func)
        def wrapper(*args, **kwargs):
            self_obj = obj if obj is not None else _construct(target_type, self.name)
            return self.func(self_obj, *args, **kwargs)

        return wrapper


def _construct(cls, method_name: str):
    try:
        return cls()
    except TypeError as exc:
        raise InstantiationError(cls, f"{cls.__name__}.{method_name}() needs a default-constructible class") from exc
