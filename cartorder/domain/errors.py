# cartorder/domain/errors.py


class CartOrderError(Exception):
    """Bazowy blad serwisow koszyka i zamowien."""


class ValidationError(CartOrderError):
    """Niepoprawne albo brakujace dane od wywolujacego."""


class NotFoundError(CartOrderError):
    """Koszyk albo zamowienie nie istnieje."""


class EmptyCartError(CartOrderError):
    """Checkout pustego koszyka."""


class NotModifiableError(CartOrderError):
    """Warunkowy UPDATE nie trafil w zaden wiersz (brak zamowienia albo juz nie pending)."""


class ConcurrencyError(CartOrderError):
    """Lock usera niedostepny w czasie albo wersja koszyka zmienila sie w miedzyczasie."""


class PersistenceError(CartOrderError):
    """Blad bazy; transakcja wycofana."""


class CorruptDataError(CartOrderError):
    """Zapisany dokument JSON nie daje sie odczytac."""
