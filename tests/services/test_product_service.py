from decimal import Decimal

import pytest

from sannu.exceptions import ValidationError
from sannu.models.contribution import Contribution
from sannu.services import storage
from sannu.services.image_service import UploadedImage
from sannu.services.product_service import ProductService


def _upload(content, filename="photo.png", content_type="image/png"):
    return UploadedImage(filename=filename, content_type=content_type, content=content)


def test_add_product_updates_total_and_order(db, make_tenant, make_project):
    project = make_project(make_tenant(), products=[("Rice", "100.00")])

    product = ProductService(db).add_product(project, {"name": " Beans ", "price": "25.5"})

    db.refresh(project)
    assert product.name == "Beans"
    assert product.price == Decimal("25.50")
    assert product.sort_order == 1
    assert project.total_amount == Decimal("125.50")


def test_add_product_with_image(db, make_tenant, make_project, png_bytes):
    project = make_project(make_tenant())

    product = ProductService(db).add_product(project, {"name": "Beans", "price": "1"}, _upload(png_bytes))

    assert product.image_url.startswith("products/")
    assert product.image_url.endswith(".jpg")
    assert storage.exists(product.image_url)


@pytest.mark.parametrize(
    "data,field",
    [
        ({"price": "10"}, "name"),
        ({"name": "Beans", "price": "-1"}, "price"),
        ({"name": "Beans", "price": "ten"}, "price"),
    ],
)
def test_add_product_validation(db, make_tenant, make_project, data, field):
    project = make_project(make_tenant())

    with pytest.raises(ValidationError) as exc:
        ProductService(db).add_product(project, data)

    assert field in exc.value.errors


def test_update_product_replaces_image(db, make_tenant, make_project, png_bytes, make_image):
    project = make_project(make_tenant(), products=[])
    service = ProductService(db)
    product = service.add_product(project, {"name": "Beans", "price": "10"}, _upload(png_bytes))
    old_image = product.image_url

    updated = service.update_product(product, {"price": "12.00"}, _upload(make_image(color=(0, 0, 255))))

    db.refresh(project)
    assert updated.image_url != old_image
    assert not storage.exists(old_image)
    assert storage.exists(updated.image_url)
    assert project.total_amount == Decimal("12.00")


def test_update_product_remove_image(db, make_tenant, make_project, png_bytes):
    project = make_project(make_tenant(), products=[])
    service = ProductService(db)
    product = service.add_product(project, {"name": "Beans", "price": "10"}, _upload(png_bytes))
    old_image = product.image_url

    updated = service.update_product(product, {}, remove_image=True)

    assert updated.image_url is None
    assert not storage.exists(old_image)


def test_delete_product_recalculates_total(db, make_tenant, make_project):
    project = make_project(make_tenant(), products=[("Rice", "100.00"), ("Beans", "20.00")])
    beans = project.products[1]

    ProductService(db).delete_product(beans)

    db.refresh(project)
    assert [p.name for p in project.products] == ["Rice"]
    assert project.total_amount == Decimal("100.00")


def test_delete_product_blocked_by_contributions(db, make_tenant, make_user, make_project):
    project = make_project(make_tenant())
    db.add(Contribution(
        tenant_id=project.tenant_id, user_id=make_user().id, project_id=project.id,
        total_committed=Decimal("120.00"),
    ))
    db.commit()

    with pytest.raises(ValueError, match="referenced by existing contributions"):
        ProductService(db).delete_product(project.products[0])


def test_reorder_products(db, make_tenant, make_project):
    project = make_project(make_tenant(), products=[("A", "1"), ("B", "1"), ("C", "1")])
    a, b, c = (p.id for p in project.products)

    ProductService(db).reorder_products(project, [c, a, b])

    assert [p.name for p in project.products] == ["C", "A", "B"]


def test_reorder_requires_ids(db, make_tenant, make_project):
    with pytest.raises(ValueError, match="Order array cannot be empty."):
        ProductService(db).reorder_products(make_project(make_tenant()), [])


def test_cleanup_unused_images(db, make_tenant, make_project, png_bytes):
    project = make_project(make_tenant(), products=[])
    service = ProductService(db)
    used = service.add_product(project, {"name": "Beans", "price": "10"}, _upload(png_bytes)).image_url
    storage.put_bytes("products/orphan.jpg", b"stale")

    assert service.cleanup_unused_images(dry_run=True) == ["products/orphan.jpg"]
    assert storage.exists("products/orphan.jpg")

    assert service.cleanup_unused_images() == ["products/orphan.jpg"]
    assert not storage.exists("products/orphan.jpg")
    assert storage.exists(used)
