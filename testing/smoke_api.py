"""
Quick API smoke test against a running gateway (python -m backend.gateway.server).
Tests: register, login, profile, photo upload, create/like/comment event, stats.
"""

import io
import os
import uuid

import requests

BASE = os.getenv("SMOKE_BASE_URL", "http://localhost:5050")

email = f"smoke-{uuid.uuid4().hex[:8]}@example.com"

# 1) Register a user
r = requests.post(f"{BASE}/auth/register", json={
    "firstName": "Smoke",
    "lastName": "Test",
    "email": email,
    "password": "pw1",
    "type": "student",
})
print("REGISTER:", r.status_code, r.json())

# 2) Login with same credentials
r = requests.post(f"{BASE}/auth/login", json={"email": email, "password": "pw1"})
print("LOGIN:", r.status_code, r.json())
token = r.json().get("token")
headers = {"Authorization": f"Bearer {token}"}

# 3) Profile details
r = requests.get(f"{BASE}/user/details", headers=headers)
print("DETAILS:", r.status_code, r.json())

# 4) Upload a profile photo
r = requests.put(
    f"{BASE}/user/update-photo",
    files={"photo": ("smoke.png", io.BytesIO(b"\x89PNG\r\n\x1a\n"), "image/png")},
    headers=headers,
)
print("UPDATE PHOTO:", r.status_code, r.json())

# 5) Create a new event
r = requests.post(f"{BASE}/event/create", json={
    "title": "First Test Event",
    "description": "Simple test",
    "location": "Room 101",
    "date": "2025-10-20T10:00:00Z",
}, headers=headers)
print("CREATE EVENT:", r.status_code, r.json())
event_id = r.json().get("id")

# 6) Like and comment
r = requests.put(f"{BASE}/event/{event_id}/like", headers=headers)
print("LIKE:", r.status_code, r.json().get("likes"))
r = requests.post(f"{BASE}/event/{event_id}/comment", json={"text": "Looks fun"}, headers=headers)
print("COMMENT:", r.status_code, r.json().get("comments"))

# 7) List all events and stats
r = requests.get(f"{BASE}/event/getevent")
print("LIST EVENTS:", r.status_code, len(r.json()))
r = requests.get(f"{BASE}/stat/summary")
print("STATS:", r.status_code, r.json())
