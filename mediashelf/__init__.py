"""
mediashelf - Confined media library server.

Exposes one directory tree as a browsable, streamable audio library and
keeps a small per-user playlist store in the PLS text format.
"""
