import httpx

from supplier_orders.shared.decorators import log_errors


class ShopifyGraphQLError(Exception):
    """Raised when the Shopify API returns GraphQL errors."""


def shop_domain(shop: str) -> str:
    """Normalize ``acme``, ``acme.myshopify.com`` or ``https://acme.myshopify.com/``."""
    domain = shop.strip().removeprefix("https://").removeprefix("http://").rstrip("/")
    if "." not in domain:
        domain = f"{domain}.myshopify.com"
    return domain


def _auth_headers(access_token: str) -> dict[str, str]:
    return {
        "X-Shopify-Access-Token": access_token,
        "Content-Type": "application/json",
    }


class ShopifyGraphQLClient:
    """Thin httpx wrapper for the Shopify Admin GraphQL API."""

    def __init__(
        self, client: httpx.Client, shop: str, access_token: str, api_version: str
    ) -> None:
        self._client = client
        self._endpoint = (
            f"https://{shop_domain(shop)}/admin/api/{api_version}/graphql.json"
        )
        self._headers = _auth_headers(access_token)

    @log_errors
    def execute(self, query: str, variables: dict | None = None) -> dict:
        """POST a GraphQL query and return the full response body.

        Raises:
            ShopifyGraphQLError: if the response contains a top-level ``errors`` key.
            httpx.HTTPStatusError: on non-2xx HTTP responses.
        """
        payload: dict = {"query": query}
        if variables:
            payload["variables"] = variables

        response = self._client.post(self._endpoint, headers=self._headers, json=payload)
        response.raise_for_status()

        body: dict = response.json()

        if errors := body.get("errors"):
            raise ShopifyGraphQLError(errors)

        return body


class ShopifyRestClient:
    """Thin httpx wrapper for the Shopify Admin REST API."""

    def __init__(
        self, client: httpx.Client, shop: str, access_token: str, api_version: str
    ) -> None:
        self._client = client
        self._base_url = f"https://{shop_domain(shop)}/admin/api/{api_version}"
        self._headers = _auth_headers(access_token)

    @log_errors
    def get(self, path: str, params: dict | None = None) -> httpx.Response:
        """GET ``path`` (relative to the API base, or an absolute pagination URL).

        Raises:
            httpx.HTTPStatusError: on non-2xx HTTP responses.
        """
        url = path if path.startswith("https://") else f"{self._base_url}/{path.lstrip('/')}"
        response = self._client.get(url, headers=self._headers, params=params)
        response.raise_for_status()
        return response
