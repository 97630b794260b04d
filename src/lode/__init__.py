"""Linode Orchestrated Deployment Engine (LODE).

Provision an LKE cluster, gate on control-plane readiness, and deploy a
containerized application onto it.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
