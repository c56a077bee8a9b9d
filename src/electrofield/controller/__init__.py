"""
The CONTROLLER layer turns input into Scene Model mutations and drives the
per-frame recomputation and the background persistence tasks.
"""
