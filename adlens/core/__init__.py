# Core module - config, logging, exceptions, cookie session
from adlens.core.config import settings
