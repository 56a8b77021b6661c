from .gateway import ContractGateway

__all__ = ["ContractGateway"]
