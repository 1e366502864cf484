"""
Upload transports

A transport is any coroutine function ``transport(file, options)``; the
value it returns becomes the session result.
"""

from .local import LocalCopyTransport

__all__ = ['LocalCopyTransport']
