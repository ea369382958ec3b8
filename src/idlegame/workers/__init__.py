"""arq worker wiring for the periodic economy jobs.

Import path for arq CLI: arq idlegame.workers.scheduler.WorkerSettings
"""
