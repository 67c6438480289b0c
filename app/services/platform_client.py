"""Commerce platform Admin API client for metafield publishing."""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


METAFIELDS_SET_MUTATION = """
mutation MetafieldsSet($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields {
      id
      namespace
      key
      value
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""


class PlatformAPIError(Exception):
    """Raised when the platform rejects a request or cannot be reached."""
    def __init__(self, message: str, errors: Optional[List[str]] = None, user_error: bool = False):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
        self.user_error = user_error


class PlatformClient:
    """GraphQL client for the commerce platform Admin API."""

    API_URL_TEMPLATE = "https://{shop}/admin/api/{version}/graphql.json"

    def __init__(self, shop_domain: str, access_token: str, api_version: str = '2024-10', timeout: int = 10):
        """
        Initialize platform client.

        Args:
            shop_domain: Shop host name (e.g. my-shop.myshopify.com)
            access_token: Per-call Admin API access token, never stored
            api_version: Admin API version segment
            timeout: Request timeout in seconds
        """
        if not shop_domain:
            raise ValueError("shop_domain is required")
        if not access_token:
            raise ValueError("access_token is required")

        shop_domain = shop_domain.replace("https://", "").replace("http://", "").strip("/")
        self.url = self.API_URL_TEMPLATE.format(shop=shop_domain, version=api_version)
        self.timeout = timeout
        self.headers = {
            'X-Shopify-Access-Token': access_token,
            'Content-Type': 'application/json'
        }

    def set_metafield(
        self,
        owner_id: str,
        namespace: str,
        key: str,
        value: str,
        value_type: str = 'json'
    ) -> List[Dict[str, Any]]:
        """
        Set one metafield on an owner resource (idempotent upsert).

        Returns:
            List of metafields reported by the platform

        Raises:
            PlatformAPIError: transport failures, GraphQL errors or userErrors
        """
        payload = {
            "query": METAFIELDS_SET_MUTATION,
            "variables": {
                "metafields": [{
                    "ownerId": owner_id,
                    "namespace": namespace,
                    "key": key,
                    "type": value_type,
                    "value": value
                }]
            }
        }

        logger.info(f"[SYNC] Setting metafield {namespace}.{key} on {owner_id}")

        try:
            response = requests.post(self.url, json=payload, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            logger.error(f"[SYNC] HTTP error setting metafield: {e.response.text}")
            raise PlatformAPIError(
                f"Platform API returned HTTP {e.response.status_code}",
                errors=[e.response.text]
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[SYNC] Transport error setting metafield: {str(e)}")
            raise PlatformAPIError(f"Platform API request failed: {str(e)}")

        if data.get('errors'):
            messages = [err.get('message', str(err)) for err in data['errors']]
            logger.error(f"[SYNC] GraphQL errors: {messages}")
            raise PlatformAPIError("Platform API returned errors", errors=messages)

        result = (data.get('data') or {}).get('metafieldsSet') or {}
        user_errors = result.get('userErrors') or []
        if user_errors:
            messages = [err.get('message', str(err)) for err in user_errors]
            logger.warning(f"[SYNC] Metafield rejected: {messages}")
            raise PlatformAPIError("Platform rejected the metafield", errors=messages, user_error=True)

        metafields = result.get('metafields') or []
        logger.info(f"[SYNC] Metafield saved for {owner_id} ({len(metafields)} metafields)")
        return metafields
