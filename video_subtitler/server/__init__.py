"""HTTP polling surface: FastAPI app, request/response models and the job store."""
