from .slug_store_port import SlugStorePort

__all__ = ["SlugStorePort"]
