from .wishlist import Wishlist


__all__ = [
    "Wishlist",
]
