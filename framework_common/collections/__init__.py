from .type_list import TypeList

__all__ = ["TypeList"]
