from .base import EntityInterface
from .regions import RegionInterface
from .universities import UniversityInterface
from .small_groups import SmallGroupInterface
from .alumni_small_groups import AlumniSmallGroupInterface
from .members import MemberInterface
from .events import EventInterface
from .users import UserInterface
from .user_roles import UserRoleInterface
from .roles import RoleInterface

def get_all_dtos():
    def recurse(cls):
        subs = []
        for sub in cls.__subclasses__():
            subs.append(sub)
            subs.extend(recurse(sub))
        return subs
    return recurse(EntityInterface)
