# Built-in
import inspect

# Third-party
import numpy as np


class PrintableMixin:
    """
    Mixin class to add pretty-printing capabilities to classes.
    """

    def _format_value(self, value, max_len=30):
        if isinstance(value, np.ndarray):
            text = f"ndarray{value.shape} {value.dtype}"
        else:
            text = repr(value)
        if len(text) > max_len:
            text = text[: max_len - 3] + "..."
        return text

    def __str__(self):
        class_name = self.__class__.__name__
        module_name = inspect.getmodule(self).__name__
        info = f"Instance of {class_name}, ID: {id(self)}\n"
        info += f"\nClass name: {class_name}\nDefined in: {module_name}\n"
        info += f"\nSignature:\n{inspect.signature(self.__init__)}\n"

        attributes = [
            attr
            for attr in dir(self)
            if not attr.startswith("__") and not callable(getattr(self, attr))
        ]
        methods = [
            method
            for method in dir(self)
            if not method.startswith("__") and callable(getattr(self, method))
        ]

        max_name_len = max((len(attr) for attr in attributes), default=0)

        info += "\nAttributes:\n"
        for attr in attributes:
            value = self._format_value(getattr(self, attr))
            info += f"    {attr:<{max_name_len}} : {value}\n"

        info += "\nMethods:\n"
        for method in methods:
            info += f"    {method}\n"

        return info
