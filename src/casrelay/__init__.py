from .version import __version__ as __version__

__title__ = "casrelay"
__description__ = "Credential relay for cookie-based CAS portals."
__license__ = "Apache-2.0"
