"""Runtime support for statically recompiled N64 programs: memory, BPS patching, RSP, ROMs, PI and saving."""

__version__ = "0.1.0"