"""
Entry point to run the API server.
"""
import os

import uvicorn


if __name__ == "__main__":
    uvicorn.run(
        "app.api:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )
