"""Exception taxonomy shared by every stage of the OCR pipeline."""


class CascadeOCRError(Exception):
    """Base class for all errors raised by cascade_ocr."""
    pass


class ModelFetchError(CascadeOCRError):
    """Network or HTTP failure while fetching a model artifact."""
    pass


class ModelNotFoundError(ModelFetchError):
    """The artifact path resolved to something that is not an artifact (e.g. an HTML page)."""
    pass


class NotInitializedError(CascadeOCRError):
    """An operation was invoked before the component was initialized."""
    pass


class InferenceError(CascadeOCRError):
    """The inference engine failed or produced malformed output."""
    pass


class WorkerFaultError(CascadeOCRError):
    """A recognition worker reported a failure while processing a page."""
    pass


_BY_NAME = {
    cls.__name__: cls
    for cls in (
        CascadeOCRError,
        ModelFetchError,
        ModelNotFoundError,
        NotInitializedError,
        InferenceError,
        WorkerFaultError,
    )
}


def error_from_name(name, message: str) -> CascadeOCRError:
    """Rebuild a taxonomy error from the class name carried in an error message."""
    return _BY_NAME.get(name or "", CascadeOCRError)(message)
