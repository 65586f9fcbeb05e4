"""
audit_log — Spinnaker audit log Lambda package.

handler.handler is the API Gateway entry point.
"""
