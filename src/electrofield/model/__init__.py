"""
The MODEL layer contains the scene data structures and their persistence.
It has NO knowledge of painting or input devices.
It deals with Charges, Display Settings and Scene I/O.
"""
