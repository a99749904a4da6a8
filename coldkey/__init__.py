# coldkey - stage offline OpenPGP keys into an ephemeral GnuPG home
from .core.version import VERSION

__all__ = ["VERSION"]
