"""Tests for carnet storage."""

import threading

import pytest

from src.documents.carnet import CarnetAduanero
from src.storage.repository import InMemoryCarnetRepository, create_repository


def _carnet(numero: str, nombre: str = "GONZALO PEREZ SOTO", valid: bool = True) -> CarnetAduanero:
    return CarnetAduanero(
        titulo="CARNÉ ADUANERO",
        nombre_completo=nombre,
        rut="15.970.128-K",
        numero_carne=numero,
        valid=valid,
    )


class TestInMemoryCarnetRepository:
    """Tests for the in-memory backend."""

    def setup_method(self) -> None:
        self.repo = InMemoryCarnetRepository()

    def test_add_assigns_increasing_ids(self) -> None:
        first = self.repo.add(_carnet("N1"))
        second = self.repo.add(_carnet("N2"))
        assert (first.id, second.id) == (1, 2)
        assert self.repo.count() == 2

    def test_get(self) -> None:
        stored = self.repo.add(_carnet("N1"))
        assert self.repo.get(stored.id) == stored
        assert self.repo.get(99) is None

    def test_ids_not_reused_after_delete(self) -> None:
        first = self.repo.add(_carnet("N1"))
        assert self.repo.delete(first.id) is True
        assert self.repo.delete(first.id) is False
        assert self.repo.add(_carnet("N2")).id == 2

    def test_list_newest_first(self) -> None:
        for n in range(3):
            self.repo.add(_carnet(f"N{n}"))
        numbers = [s.record.numero_carne for s in self.repo.list()]
        assert numbers == ["N2", "N1", "N0"]

    def test_list_pagination(self) -> None:
        for n in range(5):
            self.repo.add(_carnet(f"N{n}"))
        page = self.repo.list(page=2, page_size=2)
        assert [s.record.numero_carne for s in page] == ["N2", "N1"]
        assert self.repo.list(page=4, page_size=2) == []

    def test_list_search_is_case_insensitive(self) -> None:
        self.repo.add(_carnet("N1", nombre="GONZALO PEREZ SOTO"))
        self.repo.add(_carnet("N2", nombre="MARIA LOPEZ DIAZ"))
        found = self.repo.list(search="lopez")
        assert [s.record.numero_carne for s in found] == ["N2"]
        assert len(self.repo.list(search="15.970.128")) == 2
        assert [s.record.numero_carne for s in self.repo.list(search="n1")] == ["N1"]

    def test_exists_by_number(self) -> None:
        self.repo.add(_carnet("N8"))
        assert self.repo.exists_by_number("N8") is True
        assert self.repo.exists_by_number("N9") is False

    def test_statistics(self) -> None:
        self.repo.add(_carnet("N1"))
        self.repo.add(_carnet("N2", valid=False))
        assert self.repo.statistics() == {"total": 2, "valid": 1, "invalid": 1}

    def test_concurrent_adds(self) -> None:
        def worker(offset: int) -> None:
            for n in range(50):
                self.repo.add(_carnet(f"N{offset}-{n}"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert self.repo.count() == 200
        ids = {s.id for s in self.repo.list(page_size=500)}
        assert ids == set(range(1, 201))


class TestCreateRepository:
    """Tests for backend selection."""

    def test_memory_backend(self) -> None:
        assert isinstance(create_repository("memory"), InMemoryCarnetRepository)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_repository("postgres")
