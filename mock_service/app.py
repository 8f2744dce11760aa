import os

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

app = FastAPI(title="Mock Service")

SERVICE_NAME = os.environ.get("MOCK_SERVICE_NAME", "invoice-api")

# prod ahead of uat: trips the critical PROD > UAT rule
DEPLOYED_VERSIONS = {
    "dev": os.environ.get("MOCK_DEV_VERSION", "1.5.0"),
    "uat": os.environ.get("MOCK_UAT_VERSION", "1.3.0"),
    "oat": os.environ.get("MOCK_OAT_VERSION", "1.3.0"),
    "prod": os.environ.get("MOCK_PROD_VERSION", "1.4.0"),
}


@app.get("/{env}/info")
async def info(env: str):
    version = DEPLOYED_VERSIONS.get(env)
    if version is None:
        raise HTTPException(status_code=404, detail=f"unknown environment: {env}")
    return {"service": SERVICE_NAME, "version": version}


@app.get("/health")
async def health():
    return PlainTextResponse("OK")


# Run with: uvicorn mock_service.app:app --port 8001 --reload
