"""
Light client • Pipeline

Modules:
  - queue.py       : FIFO admission buffer between the block source and the consumer
  - history.py     : bounded chain-tail window of blocks that started processing
  - coordinator.py : single consumer task; one block at a time through the verifier
  - controller.py  : run lifecycle (start / stop / network switch) and source wiring

Import from the submodules directly; this package keeps no import-time wiring so
`lightclient.state` can depend on `pipeline.history` without cycles.
"""
