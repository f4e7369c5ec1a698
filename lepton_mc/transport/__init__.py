"""Transport module: step-size control and the transport stepper."""

from lepton_mc.transport.engine import TransportResult, transport

__all__ = ["TransportResult", "transport"]
