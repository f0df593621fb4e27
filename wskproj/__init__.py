"""
wskproj - lifecycle reconciliation for managed OpenWhisk projects.

Discovers the entities a project owns from their ``whisk-managed``
annotations, works out which dependency packages no other project needs,
and undeploys everything in dependency order.
"""

__version__ = "0.1.0"
