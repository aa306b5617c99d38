from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from dlvery.db.store import CollectionStore, get_store
from dlvery.schemas.users import UserCreate, UserRead, normalize_user

router = APIRouter()

# Sign-in is handled outside this service; these documents only record who
# belongs to which team so dispatch can offer the right agents.


@router.get("/", response_model=List[UserRead])
async def list_users(store: CollectionStore = Depends(get_store)):
    users = [normalize_user(d) for d in await store.get_all("users")]
    return [UserRead(**u) for u in sorted(users, key=lambda u: u["email"].lower())]


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    store: CollectionStore = Depends(get_store),
):
    email = str(payload.email).strip()
    async with store.transaction() as tx:
        existing = [normalize_user(d) for d in await tx.get_all("users")]
        if any(u["email"].lower() == email.lower() for u in existing):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
        user_id = await tx.create("users", {"email": email, "role": payload.role})
    return UserRead(id=user_id, email=email, role=payload.role)
