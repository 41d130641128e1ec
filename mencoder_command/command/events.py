"""
Event names emitted by a running command.

Listener signatures:
- start(args: list[str])
- progress(info: ProgressInfo)
- codec_data(data: CodecData)
- error(error: Exception, stdout: str | None, stderr: str | None)
- end(stdout: str | None, stderr: str | None)
"""

START = "start"
PROGRESS = "progress"
CODEC_DATA = "codec_data"
ERROR = "error"
END = "end"

# All valid event names
VALID_EVENTS = frozenset([START, PROGRESS, CODEC_DATA, ERROR, END])

# Events of which exactly one fires per run
TERMINAL_EVENTS = frozenset([ERROR, END])
