import pytest
from sqlalchemy import func, select

from hostel_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from hostel_api.models.auth.role import Role
from hostel_api.models.shared.enums import Permission, UserStatus
from hostel_api.schemas.auth.role import RoleCreate, RoleUpdate

P = Permission


def moderator_role(**overrides) -> RoleCreate:
    data = {
        "name": "moderator",
        "display_name": "Moderator",
        "description": "Keeps an eye on bookings",
        "permissions": [P.VIEW_HOTELS, P.VIEW_BOOKINGS],
    }
    data.update(overrides)
    return RoleCreate(**data)


@pytest.mark.asyncio
class TestSystemRoles:
    """System role seeding and permission resolution"""

    async def test_initialize_creates_three_roles(self, role_service, session):
        created = await role_service.initialize_system_roles()
        assert sorted(created) == ["admin", "student", "teacher"]

        result = await session.execute(select(Role).where(Role.is_system == True))  # noqa: E712
        roles = {r.name: r for r in result.scalars().all()}
        assert set(roles) == {"admin", "teacher", "student"}
        assert roles["admin"].display_name == "Administrator"
        assert set(roles["student"].permissions) == {
            "view_hotels", "view_bookings", "create_booking", "view_rooms", "view_payments"
        }

    async def test_initialize_twice_is_idempotent_and_keeps_edits(self, role_service, session_factory):
        await role_service.initialize_system_roles()

        async with session_factory() as other:
            teacher = (await other.execute(select(Role).where(Role.name == "teacher"))).scalar_one()
            teacher.permissions = ["view_hotels"]
            await other.commit()

        assert await role_service.initialize_system_roles() == []

        async with session_factory() as other:
            count = (await other.execute(select(func.count(Role.id)))).scalar()
            teacher = (await other.execute(select(Role).where(Role.name == "teacher"))).scalar_one()
        assert count == 3
        assert teacher.permissions == ["view_hotels"]

    async def test_check_system_roles_lists_missing(self, role_service):
        assert sorted(await role_service.check_system_roles()) == ["admin", "student", "teacher"]
        await role_service.initialize_system_roles()
        assert await role_service.check_system_roles() == []

    @pytest.mark.parametrize("seeded", [False, True])
    async def test_system_role_permission_tiers(self, role_service, seeded):
        if seeded:
            await role_service.initialize_system_roles()

        admin = await role_service.get_role_permissions("admin")
        teacher = await role_service.get_role_permissions("teacher")
        student = await role_service.get_role_permissions("student")

        assert admin == frozenset(Permission)
        assert teacher == {
            P.READ_USER, P.VIEW_HOTELS, P.MANAGE_BOOKINGS, P.VIEW_BOOKINGS, P.CREATE_BOOKING,
            P.MANAGE_ROOMS, P.VIEW_ROOMS, P.VIEW_PAYMENTS, P.VIEW_REPORTS,
        }
        assert student == {P.VIEW_HOTELS, P.VIEW_BOOKINGS, P.CREATE_BOOKING, P.VIEW_ROOMS, P.VIEW_PAYMENTS}
        assert student < teacher < admin

    async def test_stored_record_overrides_static_table(self, role_service, session_factory):
        await role_service.initialize_system_roles()
        async with session_factory() as other:
            student = (await other.execute(select(Role).where(Role.name == "student"))).scalar_one()
            student.permissions = ["view_hotels", "view_reports"]
            await other.commit()

        assert await role_service.get_role_permissions("student") == {P.VIEW_HOTELS, P.VIEW_REPORTS}

    async def test_inactive_record_falls_back(self, role_service, session_factory):
        await role_service.initialize_system_roles()
        custom = await role_service.create_role(moderator_role())
        async with session_factory() as other:
            for name in ("student", "moderator"):
                role = (await other.execute(select(Role).where(Role.name == name))).scalar_one()
                role.permissions = ["view_logs"]
                role.is_active = False
            await other.commit()

        assert P.VIEW_ROOMS in await role_service.get_role_permissions("student")
        assert await role_service.get_role_permissions(custom.name) == frozenset()

    async def test_unknown_role_resolves_to_nothing(self, role_service):
        assert await role_service.get_role_permissions("ghost") == frozenset()


@pytest.mark.asyncio
class TestRoleLifecycle:
    """Create, update, delete of custom and system roles"""

    async def test_create_custom_role(self, role_service):
        role = await role_service.create_role(moderator_role(), creator_id=12)
        assert role.id is not None
        assert role.is_system is False
        assert role.is_active is True
        assert role.created_by == 12
        assert role.permissions == ["view_hotels", "view_bookings"]

    async def test_actors_of_resolves_known_users(self, role_service, create_user):
        admin = await create_user(role="admin")
        mine = await role_service.create_role(moderator_role(), creator_id=admin.id)
        orphan = await role_service.create_role(moderator_role(name="auditor"), creator_id=999)

        actors = await role_service.actors_of([mine, orphan])
        assert set(actors) == {admin.id}
        assert actors[admin.id].email == admin.email

    @pytest.mark.parametrize("name", ["teacher", "Teacher", "TEACHER", "admin"])
    async def test_system_role_names_conflict(self, role_service, seed_roles, name):
        with pytest.raises(ConflictError):
            await role_service.create_role(moderator_role(name=name))

    async def test_system_role_names_conflict_before_seeding(self, role_service):
        with pytest.raises(ConflictError):
            await role_service.create_role(moderator_role(name="student"))

    async def test_duplicate_custom_name_conflicts(self, role_service):
        await role_service.create_role(moderator_role())
        with pytest.raises(ConflictError):
            await role_service.create_role(moderator_role(name="Moderator"))

    async def test_unique_constraint_settles_a_lost_race(self, role_service, monkeypatch):
        await role_service.create_role(moderator_role())

        async def nothing_found(name):
            return None

        # Both creators passed the existence check before either wrote
        monkeypatch.setattr(role_service.store, "find_by_name", nothing_found)
        with pytest.raises(ConflictError):
            await role_service.create_role(moderator_role())

    @pytest.mark.parametrize("name", ["admin", "teacher", "student"])
    async def test_system_roles_cannot_be_updated_or_deleted(self, role_service, seed_roles, name):
        role = await role_service.get_role_by_name(name)

        with pytest.raises(ForbiddenError):
            await role_service.update_role(role.id, RoleUpdate(display_name="Renamed"), updater_id=1)
        with pytest.raises(ForbiddenError):
            await role_service.delete_role(role.id)

    async def test_custom_role_can_be_updated_and_deleted(self, role_service):
        role = await role_service.create_role(moderator_role())

        updated = await role_service.update_role(
            role.id,
            RoleUpdate(display_name="Senior Moderator", permissions=[P.VIEW_REPORTS]),
            updater_id=3,
        )
        assert updated.display_name == "Senior Moderator"
        assert updated.permissions == ["view_reports"]
        assert updated.description == "Keeps an eye on bookings"
        assert updated.updated_by == 3

        await role_service.delete_role(role.id)
        assert await role_service.get_role_by_name("moderator") is None

    async def test_update_and_delete_unknown_role(self, role_service):
        with pytest.raises(NotFoundError):
            await role_service.update_role(999, RoleUpdate(display_name="Nobody"))
        with pytest.raises(NotFoundError):
            await role_service.delete_role(999)
        with pytest.raises(NotFoundError):
            await role_service.get_role(999)

    async def test_delete_blocked_while_assigned(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin")
        role = await role_service.create_role(moderator_role())
        holders = [await create_user(role="moderator") for _ in range(2)]

        with pytest.raises(ConflictError) as exc_info:
            await role_service.delete_role(role.id)
        assert exc_info.value.blocking_count == 2
        assert "2 user(s)" in exc_info.value.detail
        assert exc_info.value.errors[0]["count"] == 2

        for holder in holders:
            await role_service.assign_role_to_user(holder.id, "student", admin.id)

        await role_service.delete_role(role.id)
        assert await role_service.get_role_by_name("moderator") is None

    async def test_list_filters_and_search(self, role_service, seed_roles):
        await role_service.create_role(moderator_role())
        await role_service.create_role(
            moderator_role(name="warden", display_name="Hostel Warden", description="Night shift")
        )

        roles, total = await role_service.get_roles(is_system=False)
        assert total == 2
        assert [r.name for r in roles] == ["warden", "moderator"]

        roles, total = await role_service.get_roles(search="WARD")
        assert total == 1 and roles[0].name == "warden"

        roles, total = await role_service.get_roles(search="night")
        assert [r.name for r in roles] == ["warden"]

        roles, total = await role_service.get_roles(is_system=True, page=2, limit=2)
        assert total == 3
        assert len(roles) == 1


@pytest.mark.asyncio
class TestRoleAssignment:
    """Assignment authority follows the hierarchy"""

    async def test_teacher_assigns_student(self, role_service, seed_roles, create_user):
        teacher = await create_user(role="teacher")
        target = await create_user(role="teacher")

        user = await role_service.assign_role_to_user(target.id, "student", teacher.id)
        assert user.role == "student"

    @pytest.mark.parametrize("role_name", ["teacher", "admin"])
    async def test_teacher_cannot_assign_upward(self, role_service, seed_roles, create_user, role_name):
        teacher = await create_user(role="teacher")
        student = await create_user(role="student")

        with pytest.raises(ForbiddenError):
            await role_service.assign_role_to_user(student.id, role_name, teacher.id)
        with pytest.raises(ForbiddenError):
            await role_service.assign_role_to_user(teacher.id, role_name, teacher.id)

    async def test_teacher_cannot_assign_custom_role(self, role_service, seed_roles, create_user):
        await role_service.create_role(moderator_role())
        teacher = await create_user(role="teacher")
        student = await create_user(role="student")

        with pytest.raises(ForbiddenError):
            await role_service.assign_role_to_user(student.id, "moderator", teacher.id)

    @pytest.mark.parametrize("role_name", ["admin", "teacher", "student", "moderator"])
    async def test_admin_assigns_any_role(self, role_service, seed_roles, create_user, role_name):
        await role_service.create_role(moderator_role())
        admin = await create_user(role="admin")
        target = await create_user(role="student")

        user = await role_service.assign_role_to_user(target.id, role_name, admin.id)
        assert user.role == role_name
        assert user.id == target.id

    async def test_unknown_role_is_not_found(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin")
        target = await create_user(role="student")

        with pytest.raises(NotFoundError):
            await role_service.assign_role_to_user(target.id, "ghost", admin.id)

    async def test_inactive_role_is_not_found(self, role_service, seed_roles, create_user):
        role = await role_service.create_role(moderator_role())
        await role_service.update_role(role.id, RoleUpdate(is_active=False))
        admin = await create_user(role="admin")
        target = await create_user(role="student")

        with pytest.raises(NotFoundError):
            await role_service.assign_role_to_user(target.id, "moderator", admin.id)

    async def test_unknown_user_is_not_found(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin")
        with pytest.raises(NotFoundError):
            await role_service.assign_role_to_user(9999, "student", admin.id)

    async def test_inactive_assigner_is_forbidden(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin", status=UserStatus.INACTIVE.value)
        target = await create_user(role="student")

        with pytest.raises(ForbiddenError):
            await role_service.assign_role_to_user(target.id, "teacher", admin.id)

    async def test_assigner_role_is_read_at_decision_time(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin")
        other_admin = await create_user(role="admin")
        target = await create_user(role="student")

        await role_service.assign_role_to_user(target.id, "teacher", admin.id)
        # Demoted by another admin between two requests
        await role_service.assign_role_to_user(admin.id, "student", other_admin.id)

        with pytest.raises(ForbiddenError):
            await role_service.assign_role_to_user(target.id, "admin", admin.id)

    async def test_bulk_assign_collects_failures(self, role_service, seed_roles, create_user):
        admin = await create_user(role="admin")
        first = await create_user(role="student")
        second = await create_user(role="student")

        result = await role_service.bulk_assign_role([first.id, 9999, second.id], "teacher", admin.id)

        assert result.success == [first.id, second.id]
        assert len(result.failed) == 1
        assert result.failed[0].user_id == 9999
        assert result.failed[0].error == "User not found"

    async def test_bulk_assign_forbidden_role_fails_every_member(self, role_service, seed_roles, create_user):
        teacher = await create_user(role="teacher")
        students = [await create_user(role="student") for _ in range(2)]

        result = await role_service.bulk_assign_role([s.id for s in students], "admin", teacher.id)
        assert result.success == []
        assert [f.user_id for f in result.failed] == [s.id for s in students]

    async def test_users_by_role_paginates(self, role_service, create_user):
        created = [await create_user(role="teacher") for _ in range(3)]
        await create_user(role="student")

        users, total = await role_service.get_users_by_role("teacher", page=1, limit=2)
        assert total == 3
        assert [u.id for u in users] == [created[2].id, created[1].id]

        users, total = await role_service.get_users_by_role("teacher", page=2, limit=2)
        assert [u.id for u in users] == [created[0].id]


@pytest.mark.asyncio
class TestHasPermission:
    async def test_unknown_role_name_has_no_permissions(self, role_service, create_user):
        user = await create_user(role="retired_role")
        assert await role_service.has_permission(user.id, P.VIEW_HOTELS) is False

    async def test_missing_user_has_no_permissions(self, role_service):
        assert await role_service.has_permission(424242, P.VIEW_HOTELS) is False

    async def test_inactive_user_has_no_permissions(self, role_service, create_user):
        user = await create_user(role="admin", status=UserStatus.INACTIVE.value)
        assert await role_service.has_permission(user.id, P.VIEW_HOTELS) is False

    async def test_custom_role_end_to_end(self, role_service, create_user):
        await role_service.initialize_system_roles()
        admin = await create_user(role="admin")
        u1 = await create_user(role="student")

        await role_service.create_role(moderator_role(), creator_id=admin.id)
        await role_service.assign_role_to_user(u1.id, "moderator", admin.id)

        assert await role_service.has_permission(u1.id, P.VIEW_HOTELS) is True
        assert await role_service.has_permission(u1.id, P.MANAGE_HOTELS) is False
