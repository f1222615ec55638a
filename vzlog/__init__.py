"""Smart-meter logging core: OBIS codes, options, readings, buffers, channels, configuration and push delivery."""

__version__ = "0.1.0"