import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from applyhub.config import get_settings
from applyhub.routers import ai, auth, forms

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Job Application API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(forms.router)
app.include_router(ai.router)


@app.get("/")
def root():
    return {"message": "Job Application API", "docs": "/docs"}
