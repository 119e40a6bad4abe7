"""ipdrviz: graph analytics for telecom IPDR session records."""

__version__ = "0.1.0"
