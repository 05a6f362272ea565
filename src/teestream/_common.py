NOTSET = object()
# Result of a ``Reduce`` without an initial value over an empty stream.


class InvalidArgumentError(TypeError, ValueError):
    """
    Raised when a call violates the argument contract of :func:`~teestream.tee`
    or :func:`~teestream.run_consumers`.

    It is raised synchronously, before any element is pulled from the input stream.
    Being a subclass of both ``TypeError`` and ``ValueError``, it can be
    caught the way either built-in exception would be.
    """
