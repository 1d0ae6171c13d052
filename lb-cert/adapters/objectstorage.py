import requests
from urllib.parse import quote

from errors import RemoteAPIError


class ObjectStorage:
    """OCI Object Storage REST adapter (read-only: HEAD and GET of one object)."""
    def __init__(self, endpoint: str, signer=None, timeout: float = 30):
        self.base = endpoint.rstrip("/")
        self.timeout = timeout
        self.s = requests.Session()
        self.s.auth = signer

    @classmethod
    def for_region(cls, region: str, signer=None, timeout: float = 30) -> "ObjectStorage":
        return cls(f"https://objectstorage.{region}.oraclecloud.com", signer, timeout)

    def _u(self, namespace: str, bucket: str, obj: str) -> str:
        return f"{self.base}/n/{quote(namespace, safe='')}/b/{quote(bucket, safe='')}/o/{quote(obj, safe='')}"

    def head(self, namespace: str, bucket: str, obj: str) -> bool:
        url = self._u(namespace, bucket, obj)
        try:
            r = self.s.head(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RemoteAPIError("HeadObject", None, str(e)) from e
        if r.status_code == 404:
            return False
        if r.status_code >= 400:
            raise RemoteAPIError("HeadObject", r.status_code, f"{url}: {r.reason}")
        return True

    def get(self, namespace: str, bucket: str, obj: str) -> bytes:
        url = self._u(namespace, bucket, obj)
        try:
            r = self.s.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemoteAPIError("GetObject", status, f"Failed to download {url}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteAPIError("GetObject", None, str(e)) from e
        return r.content
