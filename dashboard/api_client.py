# dashboard/api_client.py
"""
Thin requests-based client for the certificate request REST API.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed API call. `status_code` is None when the backend could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WorkflowClient:
    def __init__(self, base_url: str, token: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: int = 15):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Any:
        headers = kwargs.pop('headers', {})
        if auth:
            if not self.token:
                raise ApiError("Not logged in.", 401)
            headers['Authorization'] = f"Bearer {self.token}"

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Could not reach the server: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = body.get('message') if isinstance(body, dict) else None
            raise ApiError(message or f"Request failed with status {response.status_code}", response.status_code)
        return body

    # --- auth ---

    def _remember(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.token = body.get('token')
        return body

    def register(self, wallet_address: str, name: str, user_type: str, password: str, email: str) -> Dict[str, Any]:
        return self._remember(self._request('POST', '/api/auth/register', auth=False, json={
            'walletAddress': wallet_address,
            'name': name,
            'userType': user_type,
            'password': password,
            'email': email,
        }))

    def login(self, wallet_address: str, password: str) -> Dict[str, Any]:
        return self._remember(self._request('POST', '/api/auth/login', auth=False, json={
            'walletAddress': wallet_address,
            'password': password,
        }))

    def logout(self) -> None:
        try:
            self._request('POST', '/api/auth/logout')
        finally:
            self.token = None

    # --- student side ---

    def get_organizations(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/users/organizations', auth=False)

    def get_student_requests(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/users/student-requests')

    def get_received_certificates(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/users/received-certificates')

    def request_certificate(self, organization_id: str, usn: str, year_of_graduation: int, certificate_type: str,
                            issuance_amount: str, transaction_hash: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            'organizationId': organization_id,
            'usn': usn,
            'yearOfGraduation': year_of_graduation,
            'certificateType': certificate_type,
            'issuanceAmount': issuance_amount,
        }
        if transaction_hash:
            payload['transactionHash'] = transaction_hash
        return self._request('POST', '/api/users/request-certificate', json=payload)

    # --- organization side ---

    def get_organization_requests(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/users/organization-requests')

    def update_request_status(self, request_id: str, status: str, remarks: str = '') -> Dict[str, Any]:
        return self._request('PUT', f'/api/users/request/{request_id}/status', json={
            'status': status,
            'remarks': remarks,
        })

    def download_url(self, content_hash: str) -> str:
        return f"{self.base_url}/api/ipfs/download/{content_hash}"
