"""APNG decoding: chunk-stream state machine and frame compositing."""
