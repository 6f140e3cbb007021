from abc import ABC, abstractmethod
from typing import Any


class AbstractCommerceClient(ABC):
	"""Interface for e-commerce platform clients that expose a product catalog."""

	@abstractmethod
	async def get_products(self, limit: int = 50) -> list[dict[str, Any]]:
		"""Fetch products from the connected store.

		Args:
			limit: Maximum number of products to return.

		Returns:
			list[dict[str, Any]]: Raw product payloads as returned by the platform.

		Raises:
			ExternalServiceAppError: If the platform call fails.
		"""
		...

	@abstractmethod
	async def verify_connection(self) -> bool:
		"""Check that the stored credentials can reach the store.

		Returns:
			bool: True if the platform accepted the credentials.
		"""
		...
