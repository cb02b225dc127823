"""FDS Outputs: readers for fire-simulation output files.

WHY: A fire-dynamics simulation run leaves behind a text manifest (the
.smv file) describing geometry and listing every companion output, plus
binary slice files holding time series of 3-D scalar fields. Post-
processing and plotting tools need both decoded into plain Python
objects without re-implementing the legacy framing rules each time.

HOW: Two parsers form the core: the manifest block state machine
(core.smv_parser) and the binary slice cursor (core.slice_parser). The
outputs package builds on them to locate and read companion CSV tables.

RULES:
- Parsed manifests are immutable; parse once, query many times
- Slice files are read through a cursor, never loaded whole by default
- Every failure surfaces as a typed exception from fds_outputs.errors
"""

from fds_outputs.core.manifest import Manifest
from fds_outputs.core.slice_parser import SliceParser, read_slice_file
from fds_outputs.core.smv_parser import parse_manifest, read_manifest
from fds_outputs.outputs.facade import Outputs

__version__ = "0.1.0"

__all__ = [
    "Manifest",
    "Outputs",
    "SliceParser",
    "parse_manifest",
    "read_manifest",
    "read_slice_file",
]
