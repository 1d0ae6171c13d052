import requests
from urllib.parse import quote

from errors import RemoteAPIError
from models import LoadBalancerSnapshot, WorkRequest

API_VERSION = "20170115"


class LoadBalancer:
    """
    OCI Load Balancing REST adapter:
      - Read load balancer state (certificates + listeners)
      - Create certificate bundles
      - Update listeners (full UpdateListenerDetails body)
      - Poll load balancer work requests
    Mutating calls return the opc-work-request-id of the async operation.
    """
    def __init__(self, endpoint: str, signer=None, timeout: float = 30):
        self.base = f"{endpoint.rstrip('/')}/{API_VERSION}"
        self.timeout = timeout
        self.s = requests.Session()
        self.s.auth = signer

    @classmethod
    def for_region(cls, region: str, signer=None, timeout: float = 30) -> "LoadBalancer":
        return cls(f"https://iaas.{region}.oraclecloud.com", signer, timeout)

    # ---------- HTTP helpers ----------
    def _u(self, p: str) -> str:
        return f"{self.base}{p}"

    def _call(self, operation: str, method: str, p: str, body: dict | None = None) -> requests.Response:
        try:
            r = self.s.request(method, self._u(p), json=body, timeout=self.timeout)
            r.raise_for_status()
            return r
        except requests.HTTPError as e:
            resp = e.response
            status = resp.status_code if resp is not None else None
            raise RemoteAPIError(operation, status, _error_message(resp)) from e
        except requests.exceptions.RequestException as e:
            raise RemoteAPIError(operation, None, str(e)) from e

    def _work_request_id(self, operation: str, r: requests.Response) -> str:
        wr_id = r.headers.get("opc-work-request-id")
        if not wr_id:
            raise RemoteAPIError(operation, r.status_code, "response carried no opc-work-request-id")
        return wr_id

    # ---------- Operations ----------
    def get_state(self, lb_id: str) -> LoadBalancerSnapshot:
        r = self._call("GetLoadBalancer", "GET", f"/loadBalancers/{quote(lb_id, safe='')}")
        return LoadBalancerSnapshot.from_api(r.json())

    def create_certificate(self, lb_id: str, name: str, chain_pem: str, key_pem: str) -> str:
        body = {"certificateName": name, "publicCertificate": chain_pem, "privateKey": key_pem}
        r = self._call("CreateCertificate", "POST", f"/loadBalancers/{quote(lb_id, safe='')}/certificates", body)
        return self._work_request_id("CreateCertificate", r)

    def get_work_request(self, work_request_id: str) -> WorkRequest:
        r = self._call("GetWorkRequest", "GET", f"/loadBalancerWorkRequests/{quote(work_request_id, safe='')}")
        return WorkRequest.from_api(r.json())

    def update_listener(self, lb_id: str, listener_name: str, details: dict) -> str:
        p = f"/loadBalancers/{quote(lb_id, safe='')}/listeners/{quote(listener_name, safe='')}"
        r = self._call("UpdateListener", "PUT", p, details)
        return self._work_request_id("UpdateListener", r)


def _error_message(resp) -> str:
    if resp is None:
        return "no response"
    try:
        j = resp.json()
        return f"{j.get('code', '')}: {j.get('message', '')}".strip(": ")
    except ValueError:
        return resp.text or resp.reason or ""
