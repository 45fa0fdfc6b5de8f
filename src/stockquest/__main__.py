"""Allow running the demo with python -m stockquest"""
from stockquest.main import run

run()
