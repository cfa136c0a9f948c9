"""
Token Launchpad Package

Core imports are lazily loaded so that ``import launchpad`` stays cheap.
For direct module access, import from submodules:

    from launchpad.factory import TokenFactory
    from launchpad.tokens import TokenLedger
    from launchpad.exceptions import LaunchpadError
"""

__version__ = "0.1.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'TokenFactory':
        from .factory import TokenFactory
        return TokenFactory
    elif name == 'TokenLedger':
        from .tokens import TokenLedger
        return TokenLedger
    elif name == 'LaunchpadError':
        from .exceptions import LaunchpadError
        return LaunchpadError
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'launchpad' has no attribute {name!r}")

__all__ = ['TokenFactory', 'TokenLedger', 'LaunchpadError', 'load_config']
