"""Sentinel Grid analyzer — predictive analytics, alerting and reporting.

Modules
───────
  history      — rolling per-node and system history, trend helpers
  patterns     — fleet-level pattern detectors
  predictor    — PredictiveEngine: per-node predictions, health score
  metrics      — prediction accuracy (precision / recall / F1)
  alert_engine — rule evaluation, cooldowns, alert lifecycle
  actions      — log / webhook / email / chat action dispatch
  reporter     — write CSV, JSONL, JSON, TXT, PNG outputs
  pipeline     — orchestrate the full flow over a simulated clock
  cli          — argparse entry-point
"""
