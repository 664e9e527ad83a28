"""
Kernel layer: models, identity, permissions and the audit log.

Engines and API routes build on these; the kernel never imports from them.
"""
