import httpx
import asyncio
import os

PORT = os.environ.get("PORT", "8080")

async def test_api():
    base = f"http://127.0.0.1:{PORT}"
    payload = {
        "group": "Muse",
        "song": "Supermassive Black Hole"
    }

    print(f"Sending request to {base}/info with {payload}...")
    try:
        async with httpx.AsyncClient(trust_env=False, base_url=base) as client:
            response = await client.post("/info", json=payload, timeout=30.0)
            print(f"Status Code: {response.status_code}")
            if response.status_code != 200:
                print(f"Error Response: {response.text}")
                return
            print(f"Detail: {response.json()}")

            songs = (await client.get("/songs", params={"group": payload["group"], "song": payload["song"]})).json()
            if not songs:
                print("\n❌ Verification FAILED: song was not stored.")
                return
            song_id = songs[0]["id"]

            text = await client.get(f"/songs/{song_id}/text", params={"page": 1, "limit": 1})
            print(f"Text page 1: {text.json()}")

            print("\n✅ Verification SUCCESS: song stored and text is paginated.")
    except httpx.HTTPError as e:
        print(f"Request Failed: {e}")

if __name__ == "__main__":
    asyncio.run(test_api())
