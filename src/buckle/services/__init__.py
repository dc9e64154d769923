"""Service layer — orchestration returning ServiceResult.

Services may import from the domain, config and infrastructure layers.
They must never import from commands or output.
"""
