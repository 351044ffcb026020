# src/sir_inference/version_info.py
VERSION = "0.1.0"
