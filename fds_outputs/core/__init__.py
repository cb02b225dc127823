"""Core decoders and intermediate representation.

WHY: The core package holds the two parsers that carry the legacy
framing rules, plus the immutable model they produce. Everything in
fds_outputs.outputs is built on top of it.

HOW: geometry.py and manifest.py define the IR, records.py decodes
single manifest lines, counted.py pairs two-pass OBST/VENT records,
smv_parser.py drives the manifest state machine, and slice_parser.py
reads binary slice files through a cursor.

RULES:
- The IR is frozen; only the parsers construct it
- Decoders are stateless; sequencing lives in smv_parser.py alone
"""
