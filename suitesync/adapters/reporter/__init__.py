"""Reporter adapters for streamed runner events.

- receiver: Decodes tele-protocol messages into a suite tree
- server: Websocket endpoint an out-of-process reporter connects to
- stdout: Terminal pretty-print of listings and results
"""
