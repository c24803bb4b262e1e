"""Logging and authentication helpers shared by the routers and workflows."""
