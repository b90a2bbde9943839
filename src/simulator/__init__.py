"""Grid simulator — deterministic node/topology state machine.

Modules
───────
  topology    — seeded node generation and region-clustered wiring
  weather     — weather snapshots and their impact multipliers
  threats     — threat construction and expiry
  engine      — tick, cascade propagation, mitigation, system state
  grid        — GridSimulation: stateful, lock-guarded engine object
  integrity   — canonical JSON digests and HMAC signatures
  cli         — argparse entry-point
"""
