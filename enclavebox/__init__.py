"""enclavebox - sealed bundle transport and signature encodings for enclave custody"""

__version__ = "1.0.0"
