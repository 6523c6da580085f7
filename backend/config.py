"""Configuration management for the course knowledge assistant."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Storage Configuration
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "course-materials")
CHUNKS_TABLE = os.getenv("CHUNKS_TABLE", "course_chunks")
DOCUMENTS_TABLE = os.getenv("DOCUMENTS_TABLE", "course_documents")
STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase")  # supabase | memory

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # text | json

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2")
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "llama-3.3-70b-versatile")
COMPLETION_MAX_TOKENS = int(os.getenv("COMPLETION_MAX_TOKENS", "2048"))
COMPLETION_TEMPERATURE = float(os.getenv("COMPLETION_TEMPERATURE", "0.7"))

# Extraction Configuration
MIN_TEXT_LENGTH = 50  # characters
OCR_LANGUAGE = os.getenv("OCR_LANGUAGE", "eng")
OCR_DPI = int(os.getenv("OCR_DPI", "300"))
TESSDATA_PREFIX = os.getenv("TESSDATA_PREFIX")

# Chunking Configuration
CHUNK_SIZE = 2000  # characters
CHUNK_OVERLAP = 200  # characters
MIN_CHUNK_LENGTH = 50  # characters

# Retrieval Configuration
CHAT_TOP_K = int(os.getenv("CHAT_TOP_K", "4"))
NOTEBOOK_TOP_K = int(os.getenv("NOTEBOOK_TOP_K", "5"))

# Ingestion Configuration
REINGEST_POLICY = os.getenv("REINGEST_POLICY", "replace")  # replace | append
STALE_PROCESSING_MINUTES = int(os.getenv("STALE_PROCESSING_MINUTES", "30"))

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
