"""Video Subtitler — word timestamps in, subtitle files and burned-in video out.

WHY: A speech-to-text provider returns a flat list of timed words that no
video player can display. This package groups those words into readable
SRT cues, stores the subtitle file, and optionally re-encodes the source
video with the cues burned into the frames.

HOW: Four stages — transcribe (provider client), segment (core), store
(blob store), render (ffmpeg). A two-track job state machine
(transcription, render) tracks progress and is the single source of truth
for polling clients.

RULES:
- The core (segmenter, SRT serializer, style resolver, state machine) is pure
- Every external system is an injected collaborator
- Clients observe progress by polling; nothing is pushed
"""

__version__ = "0.1.0"
