"""
Caching helpers shared by the storefront apps
"""
import hashlib


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    # Hash so tokens and long arguments never end up verbatim in the key
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"
