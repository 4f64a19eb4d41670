#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for exploring the API.

Creates:
  • 8 users (inserted straight into PostgreSQL; registration is external)
  • A follow graph (each user follows 3 others)
  • 4 image posts per user (32 total), uploaded through the API
  • Some pins and comments across posts

Run after the API, PostgreSQL and MinIO are up:
  python scripts/seed_data.py --api-url http://localhost:8000

Tokens are minted with the API's JWT_SECRET, so run it with the same
environment (or .env) as the API.
"""
import argparse
import asyncio
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field

import jwt
from sqlalchemy import select

from pinboard.config import settings
from pinboard.database import AsyncSessionLocal, init_db
from pinboard.models import User

BASE_USERS = [
    ("alice_shoots", "Film photography and long walks."),
    ("bob_builds", "Woodworking, mostly chairs."),
    ("carol_cooks", None),
    ("dave_draws", "Ink, watercolour, repeat."),
    ("eve_explores", "Trails and summits."),
    ("frank_flora", None),
    ("grace_gardens", "Tomatoes are a personality."),
    ("henry_hikes", None),
]

SAMPLE_CAPTIONS = [
    "Golden hour over the harbor",
    "First loaf of sourdough that actually rose",
    "Cat asleep on the warm laptop again",
    "Dog and cat finally sharing the sofa",
    "Foggy morning on the ridge trail",
    "Walnut side table, oil finish",
    "Tomato harvest, round two",
    "Sketchbook page: city rooftops",
    "Snow on the pines",
    "Dog at the beach chasing waves",
    "Street market colours",
    "Rainy window, quiet afternoon",
    None,
]

COMMENTS = [
    "Love this!",
    "The light here is unreal.",
    "Saving this for later.",
    "How long did this take?",
    "Beautiful colours.",
]

# 1x1 transparent PNG
TINY_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def token_for(user_id: int) -> str:
    return jwt.encode({"userId": user_id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@dataclass
class ApiClient:
    base_url: str
    prefix: str = field(default_factory=lambda: settings.api_prefix)

    def _send(self, method: str, path: str, user_id: int | None = None, data: dict | None = None):
        url = f"{self.base_url}{self.prefix}{path}" if not path.startswith("/health") else f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if user_id is not None:
            headers["Authorization"] = f"Bearer {token_for(user_id)}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, user_id: int, data: dict | None = None):
        return self._send("POST", path, user_id, data)

    def get(self, path: str):
        return self._send("GET", path)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.get("/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except (urllib.error.URLError, ConnectionError):
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


async def ensure_users() -> list[int]:
    """Insert the seed users (idempotent) and return their ids."""
    await init_db()
    user_ids = []
    async with AsyncSessionLocal() as session:
        for username, bio in BASE_USERS:
            result = await session.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(
                    username=username,
                    email=f"{username}@example.com",
                    password_hash="!seeded-no-login",
                    bio=bio,
                )
                session.add(user)
                await session.flush()
                print(f"  ✓ {username} ({user.id})")
            else:
                print(f"  · {username} exists ({user.id})")
            user_ids.append(user.id)
        await session.commit()
    return user_ids


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids = asyncio.run(ensure_users())

    # ── Create follow graph ───────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id in user_ids:
        for followed_id in random.sample([u for u in user_ids if u != follower_id], k=3):
            client.post(f"/users/{followed_id}/follow", follower_id)
    print("  ✓ Follow graph created")

    # ── Create posts ──────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[int] = []
    for user_id in user_ids:
        for _ in range(4):
            result = client.post(
                "/posts",
                user_id,
                {
                    "imageBase64": TINY_PNG,
                    "imageFileType": "image/png",
                    "caption": random.choice(SAMPLE_CAPTIONS),
                },
            )
            if result.get("id"):
                post_ids.append(result["id"])
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Pins and comments ─────────────────────────────────────────────────
    print("\nAdding pins and comments...")
    pins = comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 3)):
            client.post(f"/posts/{post_id}/pin", user_id)
            pins += 1
        for user_id in random.sample(user_ids, k=random.randint(0, 2)):
            client.post(f"/posts/{post_id}/comments", user_id, {"text": random.choice(COMMENTS)})
            comments += 1
    print(f"  ✓ {pins} pins, {comments} comments added")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    base = f"{api_url}{settings.api_prefix}"
    print(f"# Feed as '{BASE_USERS[0][0]}' (hasPinned is viewer-relative):")
    print(f"  curl -s -H 'Authorization: Bearer {token_for(u)}' '{base}/posts?limit=5' | python3 -m json.tool\n")
    print("# Search captions:")
    print(f"  curl -s '{base}/posts/search?query=dog%20cat' | python3 -m json.tool\n")
    print(f"# Profile of '{BASE_USERS[0][0]}':")
    print(f"  curl -s '{base}/users/{u}/profile' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print(f"# Check Prometheus metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Pinboard API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
