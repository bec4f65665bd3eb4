from locust import HttpUser, task, between
import random


class CustomerUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Register and log in a customer for this simulated client
        email = f"user_{random.randint(1, 1_000_000)}@load.test"
        self.client.post("/api/auth/register", json={"name": email, "email": email, "password": "pw", "role": "customer"})
        r = self.client.post("/api/auth/login", json={"email": email, "password": "pw"})
        if r.status_code == 200:
            self.headers = {"Authorization": f"Bearer {r.json()['token']}"}
        else:
            self.headers = None
        self.business_ids = []

    @task(1)
    def browse_businesses(self):
        r = self.client.get("/api/businesses")
        if r.status_code == 200:
            self.business_ids = [b["id"] for b in r.json()]

    @task(3)
    def send_lead(self):
        if not self.headers or not self.business_ids:
            return
        self.client.post("/api/leads", headers=self.headers, json={
            "phone": str(random.randint(1_000_000, 9_999_999)),
            "message": "load test inquiry",
            "businessId": random.choice(self.business_ids),
        })

    @task(1)
    def list_leads(self):
        if self.headers:
            self.client.get("/api/leads", headers=self.headers)
