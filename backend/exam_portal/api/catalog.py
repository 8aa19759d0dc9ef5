from fastapi import APIRouter, Depends

from exam_portal.api.deps import get_catalog, require_admin
from exam_portal.schemas.test import DeclareResultsIn, TestCreate, TestCreated, TestOut, TestView
from exam_portal.services.catalog import TestCatalog

router = APIRouter(tags=["tests"])

@router.post("/admin/tests", response_model=TestCreated, status_code=201, dependencies=[Depends(require_admin)])
def add_test(payload: TestCreate, catalog: TestCatalog = Depends(get_catalog)):
    t = catalog.create_test(payload)
    return TestCreated(test_id=t.id)

@router.get("/admin/tests", response_model=list[TestOut], dependencies=[Depends(require_admin)])
def list_tests(catalog: TestCatalog = Depends(get_catalog)):
    return catalog.list_tests()

@router.put("/admin/tests/{test_id}/results", response_model=TestOut, dependencies=[Depends(require_admin)])
def declare_results(test_id: int, payload: DeclareResultsIn, catalog: TestCatalog = Depends(get_catalog)):
    return catalog.declare_results(test_id, payload.results_declared)

@router.get("/api/tests/{test_id}", response_model=TestView)
def get_test(test_id: int, catalog: TestCatalog = Depends(get_catalog)):
    # response_model drops the answer key
    return catalog.get_test(test_id)
