"""Chain elements for network services on a VPP data plane: ACL pinholes and layer 3 cross connects."""

__version__ = "0.1.0"