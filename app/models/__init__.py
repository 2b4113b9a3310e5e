from app.models.school import School
from app.models.account import Account, AccountRole, RoleName
from app.models.child import Child, ParentChild, TeacherChild, EnrollmentStatus
