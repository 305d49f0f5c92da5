"""
Probe Error Handling

Defines the exceptions raised inside the probing pipeline. None of these
terminate a run: callers catch them at the candidate, job or worker-slot
boundary and carry on.
"""


class HrektError(Exception):
    """Base class for all prober errors"""
    pass


class ProbeError(HrektError):
    """Raised when a single HTTP request for a candidate cannot be completed"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class TechDetectionError(HrektError):
    """Raised when the technology fingerprinting collaborator fails"""
    pass


class QueueSendError(HrektError):
    """Raised when a job cannot be handed to the worker pool"""
    pass


class BrowserStartupError(HrektError):
    """Raised when a worker cannot allocate its browser instance"""
    pass
