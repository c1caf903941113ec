"""dfxp: server-to-server (FXP) transfers between FTP servers."""

__version__ = "0.1.0"
