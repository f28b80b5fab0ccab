# certapi/testing.py
# Shared unittest base class for the API test suites.

import unittest

from certapi.app import create_app
from certapi.models import db


class ApiTestCase(unittest.TestCase):
    """Gives every test a fresh app, an empty in-memory database and a test client."""

    def setUp(self):
        self.app = create_app('testing')
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    @staticmethod
    def auth(token):
        return {"Authorization": f"Bearer {token}"}

    def register(self, wallet, user_type, name=None, email=None, password="testpassword"):
        payload = {
            "walletAddress": wallet,
            "name": name or f"{user_type.title()} {wallet}",
            "userType": user_type,
            "password": password,
            "email": email or f"{wallet.lower()}@example.com",
        }
        res = self.client.post("/api/auth/register", json=payload)
        self.assertEqual(res.status_code, 201, res.get_json())
        return res.get_json()

    def request_certificate(self, student_token, organization_id, usn="ORGUSN1", year=2025,
                            certificate_type="TestType", **extra):
        payload = {
            "organizationId": organization_id,
            "usn": usn,
            "yearOfGraduation": year,
            "certificateType": certificate_type,
        }
        payload.update(extra)
        return self.client.post("/api/users/request-certificate", json=payload, headers=self.auth(student_token))
