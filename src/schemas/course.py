from pydantic import BaseModel, ConfigDict


class CourseInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_code: int
    name: str
    degree: str
    acronym_ies: str
    name_ies: str
    city: str
    uf: str
