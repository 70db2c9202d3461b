"""HTTP email adapter — posts to the deployed send-email function."""

import requests

from commerce.channel.email_port import EmailPort


class HttpEmailAdapter(EmailPort):
    def __init__(self, base_url: str, service_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        try:
            response = self.session.post(
                f"{self.base_url}/send-email",
                json={"to": to, "subject": subject, "text": body, "html": html_body or body},
                headers={"Authorization": f"Bearer {self.service_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if not response.ok:
            return {"message_id": None, "status": "failed", "error": f"HTTP {response.status_code}: {response.text[:200]}"}

        try:
            data = response.json()
        except ValueError:
            data = {}
        return {"message_id": data.get("id") or data.get("message_id"), "status": "sent"}
