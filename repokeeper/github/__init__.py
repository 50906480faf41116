"""GitHub REST API access: a small httpx client and the protection adapter."""
