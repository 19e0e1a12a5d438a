"""Backend gateways and collaborators used by the intake flow."""
