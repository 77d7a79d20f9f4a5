"""APNG encoding: frame differencing, scanline filters, chunk writer."""
