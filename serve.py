import os

import uvicorn

from api import app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    print(f"Starting ShadowFix API on port {port}...")
    uvicorn.run(app, host="0.0.0.0", port=port)
