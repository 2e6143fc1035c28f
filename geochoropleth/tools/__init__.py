from .crs import is_projected, to_common_crs
from .join import join_attributes

__all__ = [
    "is_projected",
    "join_attributes",
    "to_common_crs",
]
