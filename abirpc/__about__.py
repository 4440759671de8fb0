"""
WARNING: Do not modify this file.
"""

__all__ = [
    "__title__", "__summary__", "__version__", "__author__", "__email__", "__license__", "__copyright__", "__url__"
]

__title__ = "abirpc"

__url__ = "https://github.com/abirpc/abirpc"

__summary__ = "Provider construction and contract instance registries for web3.py."

__version__ = "0.4.0"

__author__ = "abirpc"

__email__ = "dev@abirpc.org"

__license__ = "GNU Affero General Public License, Version 3"

__copyright__ = 'Copyright (C) 2024 abirpc'
