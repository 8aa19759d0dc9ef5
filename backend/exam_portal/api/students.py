from fastapi import APIRouter, Depends

from exam_portal.api.deps import get_student_registry
from exam_portal.schemas.student import StudentCreate, StudentEnvelope, StudentOut, TestsTakenIn
from exam_portal.services.students import StudentRegistry

router = APIRouter(prefix="/api/students", tags=["students"])

@router.post("", response_model=StudentEnvelope, status_code=201)
def save_student_details(payload: StudentCreate, registry: StudentRegistry = Depends(get_student_registry)):
    student = registry.register_student(payload)
    return StudentEnvelope(message="Student details saved!", student=StudentOut.model_validate(student))

@router.get("/{email}", response_model=StudentEnvelope)
def get_student_details(email: str, registry: StudentRegistry = Depends(get_student_registry)):
    return StudentEnvelope(student=StudentOut.model_validate(registry.get_student(email)))

@router.put("/{email}/tests-taken", response_model=StudentEnvelope)
def update_tests_taken(email: str, payload: TestsTakenIn, registry: StudentRegistry = Depends(get_student_registry)):
    student = registry.set_tests_taken(email, payload.tests_taken)
    return StudentEnvelope(student=StudentOut.model_validate(student))
