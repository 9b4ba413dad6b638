import uvicorn
import os
import logging
from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.getenv("PORT", 8000))
    print(f"Starting Quote Keeper on port {port}...")
    uvicorn.run("app.main:app", host="0.0.0.0", port=port, reload=True)
