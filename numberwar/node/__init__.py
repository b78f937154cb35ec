"""
NumberWar dev node (FastAPI)
"""
