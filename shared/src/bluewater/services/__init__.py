"""Storage, payment gateway and domain services for the booking lifecycle.

Import services from their modules; this package does not re-export them
so that bluewater.config can depend on ssm_service without a cycle.
"""
