"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Python attributes are snake_case; the JSON contract is camelCase.
"""

from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


NonEmptyStr = Annotated[str, Field(min_length=1)]


# ============================================================
# AUTH SCHEMAS
# ============================================================

class EmailCodeRequest(CamelModel):
    id: NonEmptyStr

class EmailVerifyRequest(CamelModel):
    id: NonEmptyStr
    code: NonEmptyStr

class LoginRequest(CamelModel):
    id: NonEmptyStr
    password: NonEmptyStr

class JoinRequest(CamelModel):
    id: NonEmptyStr
    nickname: NonEmptyStr
    password: NonEmptyStr
    verify_password: NonEmptyStr
    is_student: bool
    uni_id: Optional[str] = None
    name: Optional[str] = None
    birthday: Optional[str] = None

class AdminCreateRequest(CamelModel):
    id: NonEmptyStr
    password: NonEmptyStr

class PasswordResetRequest(CamelModel):
    id: NonEmptyStr
    password: NonEmptyStr
    verify_password: NonEmptyStr

class AuthResponse(CamelModel):
    is_auth: bool = True

class JoinResponse(CamelModel):
    is_join: bool = True

class PasswordResetResponse(CamelModel):
    is_succeeded: bool = True

class LoginData(CamelModel):
    refresh_token: str
    access_token: str
    email: str
    nickname: Optional[str] = None
    is_admin: bool = False

class LoginResponse(CamelModel):
    data: LoginData

class RefreshData(CamelModel):
    access_token: str
    email: str

class RefreshResponse(CamelModel):
    data: RefreshData


# ============================================================
# CATEGORY / MAP / BANNER SCHEMAS
# ============================================================

class Category(CamelModel):
    id: int
    name: str

class Region(CamelModel):
    id: str
    name: str

class JobCategoryListResponse(CamelModel):
    job_category_list: List[Category]

class RegionListResponse(CamelModel):
    region_list: List[Region]

class PlatformListResponse(CamelModel):
    platform_list: List[Category]

class TechnologyListResponse(CamelModel):
    technology_list: List[Category]

class AddressInfo(CamelModel):
    address: str
    x: Optional[str] = None
    y: Optional[str] = None

class AddressSearchResponse(CamelModel):
    search_result_list: List[AddressInfo]

class BannerImageListResponse(CamelModel):
    banner_image_list: List[Optional[str]]


# ============================================================
# EMPLOYMENT (JOB POSTING) SCHEMAS
# ============================================================

class ApplyRequest(CamelModel):
    id: NonEmptyStr

class EmploymentDetail(CamelModel):
    has_authority: Optional[bool] = None
    is_applied: Optional[bool] = None
    id: str
    user_id: str
    image: Optional[str] = None
    company_name: str
    address_information: Optional[str] = None
    title: str
    content: str
    position_id: int
    position_name: str
    region: str
    deadline: str

class JobPostingSummary(CamelModel):
    image: Optional[str] = None
    id: str
    company_name: str
    position: str
    view_count: int = 0
    region: str

class JobPostingListResponse(CamelModel):
    job_posting_list: List[JobPostingSummary]

class Applicant(CamelModel):
    id: str
    profile_image: Optional[str] = None

class ApplicantInformation(CamelModel):
    applicant_count: int
    applicant_list: Optional[List[Applicant]] = None

class PostedResponse(CamelModel):
    is_posted: bool = True

class AppliedResponse(CamelModel):
    is_applied: bool = True

class UpdatedResponse(CamelModel):
    is_updated: bool = True

class DeletedResponse(CamelModel):
    is_deleted: bool = True


# ============================================================
# COMMUNITY SCHEMAS
# ============================================================

class BoardCreate(CamelModel):
    category_id: int
    title: NonEmptyStr
    content: NonEmptyStr

class BoardUpdate(CamelModel):
    id: NonEmptyStr
    title: NonEmptyStr
    content: NonEmptyStr

class CommentCreate(CamelModel):
    id: NonEmptyStr
    content: NonEmptyStr

class Comment(CamelModel):
    id: int
    user_id: str
    user_nickname: Optional[str] = None
    content: str
    from_now_while_ago_posted: str
    is_me: Optional[bool] = None
    profile_image_url: Optional[str] = Field(None, alias="profileImageURL")

class CommentListResponse(CamelModel):
    comments: List[Comment]

class CommentDeleteResponse(CamelModel):
    comments: List[Comment]
    comment_count: int

class BoardContent(CamelModel):
    like_count: int = 0
    comment_count: int = 0
    from_now_while_ago_posted: str
    id: str
    category_id: Optional[int] = None
    user_id: Optional[str] = None
    user_nickname: Optional[str] = None
    title: str
    content: Optional[str] = None
    is_me: Optional[bool] = None
    is_liked: Optional[bool] = None
    profile_image_url: Optional[str] = Field(None, alias="profileImageURL")

class BoardContentResponse(CamelModel):
    content: BoardContent

class BoardListResponse(CamelModel):
    content_list: List[BoardContent]
    page: int

class BestPickResponse(CamelModel):
    content: List[BoardContent]

class LikeResponse(CamelModel):
    is_liked: bool
    like_count: int


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileCreate(CamelModel):
    uni_id: NonEmptyStr
    name: NonEmptyStr

class ProfileOpenRequest(CamelModel):
    will_open_information: bool

class ProfileCreatedResponse(CamelModel):
    is_post: bool = True

class ProfileOpenResponse(CamelModel):
    is_open: bool

class ProfileInfo(CamelModel):
    has_not_profile: Optional[bool] = None
    is_admin: Optional[bool] = None
    is_open: Optional[bool] = None
    is_me: Optional[bool] = None
    nickname: Optional[str] = None
    id: Optional[str] = None
    image: Optional[str] = None
    positions: Optional[List[Category]] = None
    technologies: Optional[List[Category]] = None
    introduction: Optional[str] = None
    awards: Optional[List[dict]] = None
    links: Optional[List[Any]] = None
    profile_score: Optional[int] = None

class ProfileResponse(CamelModel):
    profile_info: ProfileInfo


# ============================================================
# SENIOR PROJECT SCHEMAS
# ============================================================

class TeamMemberInput(CamelModel):
    name: NonEmptyStr
    uni_id: NonEmptyStr
    introduction: NonEmptyStr
    image: Optional[str] = None

class TeamMemberInfo(CamelModel):
    name: str
    introduction: Optional[str] = None
    image: Optional[str] = None
    id: Optional[str] = None
    uni_id: Optional[str] = None

class SeniorProjectSummary(CamelModel):
    id: str
    year: Optional[Union[int, str]] = None
    group_name: str
    view_count: int = 0
    team_member: str
    platform: str
    technology: List[str]

class SeniorProjectListResponse(CamelModel):
    senior_project_list: List[SeniorProjectSummary]

class SeniorProjectRecommendResponse(CamelModel):
    senior_project_recommend_list: List[SeniorProjectSummary]

class SeniorProjectMemberListResponse(CamelModel):
    senior_project_member_list: List[TeamMemberInfo]

class ProjectDesignResponse(CamelModel):
    project_design: Optional[str] = None

class ProjectLinkResponse(CamelModel):
    link: List[Any]

class ProjectGroupResponse(CamelModel):
    group_name: str
    year: Union[int, str]

class SeniorProjectDetail(CamelModel):
    id: str
    year: Union[int, str]
    link: List[Any] = []
    group_name: str
    project_design: Optional[str] = None
    platform: List[Category]
    technology: List[Category]
    class_info: Optional[dict] = None
    team_member: List[TeamMemberInfo]

class SeniorProjectDetailResponse(CamelModel):
    senior_project_detail_info: SeniorProjectDetail


# ============================================================
# MANAGEMENT SCHEMAS
# ============================================================

class BannerInfo(CamelModel):
    file_name: str
    image: Optional[str] = None
    key: str

class BannerListResponse(CamelModel):
    banner_list: List[BannerInfo]

class StudentInfo(CamelModel):
    id: str
    uni_id: Optional[str] = None
    name: Optional[str] = None

class StudentListResponse(CamelModel):
    student_list: List[StudentInfo]

class StudentUpdate(CamelModel):
    id: NonEmptyStr
    uni_id: NonEmptyStr
    name: NonEmptyStr

class AdminInfo(CamelModel):
    id: str
    nickname: Optional[str] = None

class AdminListResponse(CamelModel):
    admin_list: List[AdminInfo]
