import logging
import os
import shutil
import tempfile
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from demo_stats import config
from demo_stats.exceptions import DemoParserException
from demo_stats.parser import DemoParser

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(title="Demo Stats API")

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/analyze-demo")
def analyze_demo(demo: UploadFile = File(...)):
    logger.info(f"Received demo file: {demo.filename}")

    # Save uploaded file
    config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=config.UPLOAD_DIR, prefix="temp_", suffix=".dem", delete=False) as buffer:
        shutil.copyfileobj(demo.file, buffer)
        temp_demo_path = Path(buffer.name)

    try:
        result = DemoParser(temp_demo_path).parse()
        return {
            "success": True,
            "data": result.to_dict()
        }
    except DemoParserException as e:
        logger.error(f"Error during analysis: {e}")
        raise HTTPException(status_code=422, detail={"error": str(e), "offset": e.offset})
    finally:
        # Cleanup
        os.remove(temp_demo_path)


@app.get("/")
async def root():
    return {"message": "Demo Stats API is running"}
