class MandelGifError(Exception):
    """Base class for errors raised by mandelgif."""


class ConfigError(MandelGifError, ValueError):
    pass


class NumericDomainError(ConfigError):
    """A numeric parameter would make the zoom or kernel ill-defined."""


class PaletteOverflow(MandelGifError, RuntimeError):
    pass


class EncoderInvariantError(MandelGifError, RuntimeError):
    """The GIF/LZW encoder was about to write a malformed stream."""
