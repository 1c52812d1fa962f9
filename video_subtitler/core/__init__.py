"""Pure core: word/cue types, segmentation, SRT, style resolution, state rules.

WHY: These modules hold all of the algorithmic content of the package and
none of the I/O. Keeping them pure makes them trivially testable and lets
the orchestrator, CLI and tests share one implementation.

HOW: ir.py defines Word and Cue, segmenter.py groups words into cues,
srt.py serializes cues, style.py normalizes renderer styles, and state.py
holds the two-track transition table.

RULES:
- No network, disk or subprocess access in this package
- Functions here never swallow errors; they either succeed or raise ValueError
  on programmer error (style resolution never raises)
"""
