import doodba.handlers.doodba as doodba
import doodba.handlers.probes as probes

__all__ = ["doodba", "probes"]
