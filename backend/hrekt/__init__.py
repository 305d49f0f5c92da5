"""
hrekt - really fast HTTP prober

Reads bare host names, works out which host:port:scheme combinations answer
over HTTP(S), and reports the ones matching the caller's criteria.
"""

__version__ = "0.1.4"
